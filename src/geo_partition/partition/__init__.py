"""Local partitioners for text and vector geometry sources."""

from geo_partition.errors import ConfigurationError
from geo_partition.partition.base import Partitioner
from geo_partition.partition.encoding import EncodingPolicy
from geo_partition.partition.feature import FeaturePartitioner
from geo_partition.partition.text import TextPartitioner

# Format tags accepted by get_partitioner, mapped to the partitioner kind.
PARTITIONER_KINDS = {
    "text": "text",
    "csv": "text",
    "feature": "feature",
    "shapefile": "feature",
    "geopackage": "feature",
    "geojson": "feature",
}


def get_partitioner(
    kind: str,
    *,
    delimiter: str = ",",
    quotechar: str = '"',
    policy: EncodingPolicy | str = EncodingPolicy.TRUNCATE,
) -> Partitioner:
    """Return the partitioner for a format tag such as ``"csv"`` or ``"shapefile"``."""
    resolved = PARTITIONER_KINDS.get(kind.strip().lower())
    if resolved == "text":
        return TextPartitioner(delimiter=delimiter, quotechar=quotechar)
    if resolved == "feature":
        return FeaturePartitioner(policy=policy)
    raise ConfigurationError(
        f"no partitioner for format {kind!r} (expected one of: {', '.join(PARTITIONER_KINDS)})"
    )


__all__ = [
    "EncodingPolicy",
    "FeaturePartitioner",
    "Partitioner",
    "TextPartitioner",
    "get_partitioner",
]
