"""Record-count balanced splitting of vector geometry collections."""

import logging
import math
import time
from pathlib import Path

import geopandas as gpd
import pandas as pd
import pyogrio

from geo_partition.errors import FormatError, InputAccessError
from geo_partition.partition.base import (
    check_input_file,
    partition_path,
    prepare_output_dir,
    validate_num_partitions,
)
from geo_partition.partition.encoding import EncodingPolicy, normalize_encoding, sanitize_value
from geo_partition.partition.types import (
    DEFAULT_ENCODING,
    FeatureSchema,
    Partition,
    PartitionPlan,
    PartitionStats,
)

logger = logging.getLogger(__name__)

# Files that must sit next to each other for a shapefile to be readable.
SHAPEFILE_MEMBERS = (".shp", ".shx", ".dbf")

# Nullable pandas dtypes for source field types that cannot hold missing values.
NULLABLE_DTYPES = {
    "bool": "boolean",
    "int8": "Int8",
    "int16": "Int16",
    "int32": "Int32",
    "int64": "Int64",
    "uint8": "UInt8",
    "uint16": "UInt16",
    "uint32": "UInt32",
    "uint64": "UInt64",
}


def resolve_vector_source(input_path: str | Path) -> Path:
    """
    Locate the vector file to read.

    A directory is accepted when it holds exactly one shapefile. Shapefiles
    must come with their index (.shx) and attribute table (.dbf).
    """
    path = Path(input_path)
    if path.is_dir():
        shapefiles = sorted(path.glob("*.shp"))
        if len(shapefiles) != 1:
            raise InputAccessError(
                f"expected exactly one shapefile in {path}, found {len(shapefiles)}"
            )
        path = shapefiles[0]

    source = check_input_file(path)
    if source.suffix.lower() == ".shp":
        missing = [
            ext
            for ext in SHAPEFILE_MEMBERS[1:]
            if not source.with_suffix(ext).exists() and not source.with_suffix(ext.upper()).exists()
        ]
        if missing:
            raise InputAccessError(f"shapefile {source.name} is missing {', '.join(missing)}")
    return source


def is_shapefile(path: Path) -> bool:
    return path.suffix.lower() == ".shp"


def read_feature_schema(source: Path) -> tuple[FeatureSchema, int]:
    """Read fields, geometry type, CRS, encoding and feature count of ``source``."""
    try:
        info = pyogrio.read_info(source, force_feature_count=True)
    except (pyogrio.errors.DataSourceError, pyogrio.errors.DataLayerError) as exc:
        raise FormatError(f"cannot read vector schema of {source}: {exc}") from exc

    schema = FeatureSchema(
        fields=tuple(str(name) for name in info["fields"]),
        dtypes=tuple(str(dtype) for dtype in info["dtypes"]),
        geometry_type=info.get("geometry_type"),
        crs=info.get("crs"),
        encoding=info.get("encoding"),
    )
    return schema, int(info["features"])


def sanitize_attributes(
    frame: gpd.GeoDataFrame,
    encoding: str,
    policy: EncodingPolicy,
    first_record: int,
    stats: PartitionStats,
) -> gpd.GeoDataFrame:
    """Apply the encoding policy to every string attribute of ``frame``."""
    geometry_column = frame.geometry.name if isinstance(frame, gpd.GeoDataFrame) else None

    for column in frame.columns:
        if column == geometry_column:
            continue
        series = frame[column]
        if not (pd.api.types.is_object_dtype(series) or pd.api.types.is_string_dtype(series)):
            continue

        values = series.tolist()
        changed = False
        for offset, value in enumerate(values):
            if not isinstance(value, str):
                continue
            clean, was_changed = sanitize_value(value, encoding, policy)
            if not was_changed:
                continue
            logger.warning(
                "Record %d: attribute %r not encodable as %s, %s %r -> %r",
                first_record + offset,
                column,
                encoding,
                "truncated" if policy is EncodingPolicy.TRUNCATE else "substituted",
                value,
                clean,
            )
            if policy is EncodingPolicy.TRUNCATE:
                stats.values_truncated += 1
            else:
                stats.values_substituted += 1
            values[offset] = clean
            changed = True

        if changed:
            frame[column] = pd.Series(values, index=frame.index, dtype=object)

    return frame


def conform_dtypes(frame: gpd.GeoDataFrame, schema: FeatureSchema) -> gpd.GeoDataFrame:
    """
    Cast columns back to the source field types.

    A chunk holding a missing value in an integer or boolean field is read as
    float or object; those columns become the matching nullable dtype so the
    partition declares the same field type as the source.
    """
    for name, dtype in zip(schema.fields, schema.dtypes, strict=True):
        nullable = NULLABLE_DTYPES.get(dtype)
        if nullable is None or name not in frame.columns:
            continue
        if str(frame[name].dtype) != dtype:
            frame[name] = frame[name].astype(nullable)
    return frame


class FeaturePartitioner:
    """
    Split a vector dataset into partitions holding the same number of features.

    Each partition holds ``ceil(total / num_partitions)`` features except the
    last one, and keeps the source's fields, geometry type and CRS.
    """

    def __init__(self, policy: EncodingPolicy | str = EncodingPolicy.TRUNCATE):
        self.policy = EncodingPolicy.parse(policy)

    def split(
        self,
        input_path: str | Path,
        output_dir: str | Path,
        num_partitions: int,
        encoding: str | None = None,
    ) -> list[Path]:
        num_partitions = validate_num_partitions(num_partitions)
        source = resolve_vector_source(input_path)
        out_dir = prepare_output_dir(output_dir)

        schema, total = read_feature_schema(source)
        if total <= 0:
            raise FormatError(f"{source} contains no features")
        if schema.crs is None:
            logger.warning("%s declares no CRS; partitions will carry none", source.name)

        plan = PartitionPlan(num_partitions, math.ceil(total / num_partitions))
        target_encoding = self._target_encoding(source, schema, encoding)
        capacity = int(plan.threshold)
        logger.info(
            "Splitting %s: %d features into partitions of %d (encoding=%s, crs=%s)",
            source.name,
            total,
            capacity,
            target_encoding,
            schema.crs,
        )

        start = time.perf_counter()
        stats = PartitionStats()
        for part, offset in enumerate(range(0, total, capacity), start=1):
            chunk = gpd.read_file(source, rows=slice(offset, offset + capacity))
            stats.records_read += len(chunk)
            chunk = sanitize_attributes(chunk, target_encoding, self.policy, offset, stats)
            chunk = conform_dtypes(chunk, schema)

            path = partition_path(out_dir, source, part)
            self._write_partition(chunk, path, schema, target_encoding)
            stats.records_written += len(chunk)
            stats.partitions.append(Partition(part, path, len(chunk), schema))
            logger.debug("Wrote partition %d: %s (%d features)", part, path.name, len(chunk))

        elapsed = time.perf_counter() - start
        if stats.values_truncated or stats.values_substituted:
            logger.warning(
                "%s: %d attribute values truncated, %d substituted",
                source.name,
                stats.values_truncated,
                stats.values_substituted,
            )
        logger.info(
            "Split %s: %d features into %d partitions in %.2fs",
            source.name,
            stats.records_written,
            len(stats.partitions),
            elapsed,
        )
        return [partition.path for partition in stats.partitions]

    @staticmethod
    def _target_encoding(source: Path, schema: FeatureSchema, encoding: str | None) -> str:
        """Shapefiles honour the requested encoding; other formats are always UTF-8."""
        if not is_shapefile(source):
            if encoding and normalize_encoding(encoding) != DEFAULT_ENCODING:
                logger.warning(
                    "%s stores text as UTF-8; ignoring requested encoding %s",
                    source.suffix,
                    encoding,
                )
            return DEFAULT_ENCODING
        target = encoding or schema.encoding or DEFAULT_ENCODING
        normalize_encoding(target)
        return target

    @staticmethod
    def _write_partition(
        chunk: gpd.GeoDataFrame,
        path: Path,
        schema: FeatureSchema,
        encoding: str,
    ) -> None:
        options = {}
        if schema.geometry_type and schema.geometry_type != "Unknown":
            options["geometry_type"] = schema.geometry_type
        if is_shapefile(path):
            options["encoding"] = encoding

        try:
            chunk.to_file(path, index=False, **options)
        except (RuntimeError, ValueError) as exc:
            raise FormatError(f"cannot create partition {path.name}: {exc}") from exc
