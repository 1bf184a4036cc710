"""Loading sources into row collections and normalizing rows to string mappings."""

import json
import logging
import math
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from itertools import chain
from pathlib import Path
from typing import Any

import geopandas as gpd
import pandas as pd
from shapely.errors import ShapelyError
from shapely.geometry import shape

from geo_partition.errors import ConfigurationError, FormatError
from geo_partition.partition.base import check_input_file
from geo_partition.partition.encoding import resolve_text_encoding
from geo_partition.partition.feature import resolve_vector_source

logger = logging.getLogger(__name__)

# Synthesized field holding the WKT encoding of a record's geometry.
WKT_FIELD = "wkt_geometry"

# Separator for several input files given as one string.
INPUT_SEPARATOR = ";"

type Record = dict[str, str]
type Normalizer = Callable[[Any], Record]


@dataclass
class SourceDataset:
    """
    Native rows of one or more input files plus the function that turns a
    native row into a ``Record``.

    ``blocks`` keeps one list of rows per input file, in input order.
    """

    name: str
    columns: tuple[str, ...]
    blocks: list[list[Any]]
    normalizer: Normalizer

    def __len__(self) -> int:
        return sum(len(block) for block in self.blocks)

    def rows(self) -> Iterator[Any]:
        return chain.from_iterable(self.blocks)


def format_value(value: Any) -> str | None:
    """Render an attribute value as a string; None for missing values."""
    if value is None:
        return None
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    if isinstance(value, float) and math.isnan(value):
        return None
    if value is pd.NaT or value is pd.NA:
        return None
    return str(value)


def _attributes(values: dict[str, Any]) -> Record:
    record: Record = {}
    for key, value in values.items():
        text = format_value(value)
        if text is not None:
            record[str(key)] = text
    return record


def normalize_row(row: dict[str, Any]) -> Record:
    """Normalize a delimited-text row; empty cells count as missing."""
    return _attributes({key: value for key, value in row.items() if value != ""})


def normalize_feature(row: tuple[dict[str, Any], Any]) -> Record:
    """Normalize an (attributes, shapely geometry) pair read from a vector source."""
    attributes, geometry = row
    record = _attributes(attributes)
    if geometry is not None and not geometry.is_empty:
        record[WKT_FIELD] = geometry.wkt
    return record


def normalize_geojson_feature(feature: dict[str, Any]) -> Record:
    """Normalize one GeoJSON feature with nested coordinate arrays."""
    record = _attributes(feature.get("properties") or {})
    geometry = feature.get("geometry")
    if not geometry:
        logger.debug("Feature %s has no geometry", feature.get("id"))
        return record
    try:
        record[WKT_FIELD] = shape(geometry).wkt
    except (ShapelyError, ValueError, KeyError, TypeError) as exc:
        logger.warning("Feature %s: invalid geometry skipped (%s)", feature.get("id"), exc)
    return record


def split_inputs(input_files: str | Path | list[str | Path]) -> list[Path]:
    """Accept one path, a list of paths or a ``;``-separated string of paths."""
    if isinstance(input_files, (list, tuple)):
        items = [str(item) for item in input_files]
    else:
        items = str(input_files).split(INPUT_SEPARATOR)
    paths = [Path(item.strip()) for item in items if item.strip()]
    if not paths:
        raise ConfigurationError("no input files given")
    return paths


def _reader_encoding(path: Path, encoding: str | None) -> str:
    text_encoding = resolve_text_encoding(path, encoding)
    if not text_encoding.bom:
        return text_encoding.name
    # Codecs that consume the byte-order mark instead of returning it as data.
    return "utf-8-sig" if text_encoding.name == "utf-8" else "utf-16"


def read_delimited(
    path: Path, delimiter: str = ",", quotechar: str = '"', encoding: str | None = None
) -> tuple[tuple[str, ...], list[dict[str, Any]]]:
    source = check_input_file(path)
    try:
        frame = pd.read_csv(
            source,
            sep=delimiter,
            quotechar=quotechar,
            dtype=str,
            encoding=_reader_encoding(source, encoding),
            keep_default_na=False,
            na_filter=False,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise FormatError(f"cannot parse delimited file {source}: {exc}") from exc
    return tuple(str(column) for column in frame.columns), frame.to_dict("records")


def read_vector(path: Path) -> tuple[tuple[str, ...], list[tuple[dict[str, Any], Any]]]:
    source = resolve_vector_source(path)
    try:
        frame = gpd.read_file(source)
    except (RuntimeError, ValueError) as exc:
        raise FormatError(f"cannot read vector source {source}: {exc}") from exc

    if isinstance(frame, gpd.GeoDataFrame):
        geometries = frame.geometry.tolist()
        attributes = frame.drop(columns=frame.geometry.name)
    else:
        geometries = [None] * len(frame)
        attributes = frame
    columns = tuple(str(column) for column in attributes.columns)
    return columns, list(zip(attributes.to_dict("records"), geometries, strict=True))


def read_geojson(path: Path, encoding: str | None = None) -> tuple[tuple[str, ...], list[dict[str, Any]]]:
    source = check_input_file(path)
    try:
        with open(source, encoding=_reader_encoding(source, encoding)) as handle:
            document = json.load(handle)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise FormatError(f"cannot parse GeoJSON {source}: {exc}") from exc

    kind = document.get("type") if isinstance(document, dict) else None
    if isinstance(document, list):
        features = document
    elif kind == "FeatureCollection":
        features = document.get("features") or []
    elif kind == "Feature":
        features = [document]
    else:
        raise FormatError(f"{source} is neither a Feature nor a FeatureCollection")

    columns: dict[str, None] = {}
    for feature in features:
        columns.update(dict.fromkeys(feature.get("properties") or {}))
    return tuple(columns) + (WKT_FIELD,), features


# Source format tags, mapped to the loader kind.
SOURCE_KINDS = {
    "csv": "delimited",
    "text": "delimited",
    "delimited": "delimited",
    "vector": "vector",
    "tabular": "vector",
    "shapefile": "vector",
    "geopackage": "vector",
    "geojson": "geojson",
}


def load_dataset(
    input_files: str | Path | list[str | Path],
    source_format: str,
    *,
    delimiter: str = ",",
    quotechar: str = '"',
    encoding: str | None = None,
) -> SourceDataset:
    """Read every input file of ``source_format`` into one SourceDataset."""
    kind = SOURCE_KINDS.get(source_format.strip().lower())
    if kind is None:
        raise ConfigurationError(
            f"unsupported source format {source_format!r} (expected one of: {', '.join(SOURCE_KINDS)})"
        )

    paths = split_inputs(input_files)
    columns: tuple[str, ...] = ()
    blocks: list[list[Any]] = []
    for path in paths:
        if kind == "delimited":
            file_columns, rows = read_delimited(path, delimiter, quotechar, encoding)
            normalizer: Normalizer = normalize_row
        elif kind == "vector":
            file_columns, rows = read_vector(path)
            normalizer = normalize_feature
        else:
            file_columns, rows = read_geojson(path, encoding)
            normalizer = normalize_geojson_feature
        if columns and file_columns != columns:
            logger.warning("%s has columns %s, expected %s", path.name, file_columns, columns)
        columns = columns or file_columns
        blocks.append(rows)
        logger.debug("Loaded %d rows from %s", len(rows), path.name)

    name = paths[0].name if len(paths) == 1 else f"{paths[0].name} (+{len(paths) - 1})"
    return SourceDataset(name=name, columns=columns, blocks=blocks, normalizer=normalizer)
