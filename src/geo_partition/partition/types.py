"""Shared constants and metadata structures for partitioning."""

from dataclasses import dataclass, field
from pathlib import Path

# 1MB buffer for efficient I/O.
BUFFER_SIZE = 1024 * 1024

# Default encoding when neither the caller nor a BOM names one.
DEFAULT_ENCODING = "utf-8"


@dataclass(frozen=True, slots=True)
class PartitionPlan:
    """Target partition count and the threshold that closes a partition.

    ``threshold`` is a byte size for text sources and a record count for
    structured sources.
    """

    num_partitions: int
    threshold: float


@dataclass(frozen=True, slots=True)
class FeatureSchema:
    """Attribute schema, geometry type and CRS of a vector dataset."""

    fields: tuple[str, ...]
    dtypes: tuple[str, ...]
    geometry_type: str | None
    crs: str | None
    encoding: str | None = None


@dataclass(frozen=True, slots=True)
class Partition:
    """A finalized partition: serial index, location and schema copy."""

    index: int
    path: Path
    record_count: int
    schema: tuple[str, ...] | FeatureSchema = field(default=())


@dataclass
class PartitionStats:
    """Counters collected during one split call."""

    records_read: int = 0
    records_written: int = 0
    bytes_written: int = 0
    values_truncated: int = 0
    values_substituted: int = 0
    partitions: list[Partition] = field(default_factory=list)
