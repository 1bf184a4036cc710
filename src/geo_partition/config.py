"""Job configuration: dataclass, properties-file loader and SRID parsing."""

import configparser
import logging
from dataclasses import dataclass
from pathlib import Path

from geo_partition.errors import ConfigurationError, InputAccessError
from geo_partition.partition.encoding import EncodingPolicy, normalize_encoding

logger = logging.getLogger(__name__)

MODES = ("local", "distributed")

# Section name injected in front of section-less properties files.
_SECTION = "job"

# Properties-file keys (lower case) mapped to PartitionConfig fields.
_PROPERTY_FIELDS = {
    "inputformat": "input_format",
    "inputfiles": "input_files",
    "outputfile": "output_file",
    "tmpdir": "tmp_dir",
    "partitions": "partitions",
    "delimiter": "delimiter",
    "quote": "quote",
    "encoding": "encoding",
    "encodingpolicy": "encoding_policy",
    "sourcecrs": "source_crs",
    "targetcrs": "target_crs",
    "mode": "mode",
    "workers": "workers",
    "executor": "executor",
}

_INT_FIELDS = ("partitions", "workers")

# Spelled-out delimiters that cannot be written literally in a properties file.
_NAMED_DELIMITERS = {"tab": "\t", "\\t": "\t", "space": " "}


@dataclass
class PartitionConfig:
    """Settings shared by the partitioners, the engine and the converter."""

    input_format: str = "csv"
    input_files: str = ""
    output_file: str = ""
    tmp_dir: str = ""
    partitions: int = 0
    delimiter: str = ","
    quote: str = '"'
    encoding: str | None = None
    encoding_policy: str = EncodingPolicy.TRUNCATE.value
    source_crs: str | None = None
    target_crs: str | None = None
    mode: str = "local"
    workers: int | None = None
    executor: str | None = None

    def validate(self) -> "PartitionConfig":
        """Check field values, raising ConfigurationError on the first bad one."""
        if len(self.delimiter) != 1:
            raise ConfigurationError(f"delimiter must be a single character, got {self.delimiter!r}")
        if len(self.quote) != 1:
            raise ConfigurationError(f"quote must be a single character, got {self.quote!r}")
        if self.partitions < 0:
            raise ConfigurationError(f"partitions must be >= 0, got {self.partitions}")
        if self.workers is not None and self.workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {self.workers}")
        if self.mode not in MODES:
            raise ConfigurationError(f"mode must be one of {MODES}, got {self.mode!r}")
        if self.encoding:
            normalize_encoding(self.encoding)
        EncodingPolicy.parse(self.encoding_policy)
        parse_srid(self.source_crs)
        parse_srid(self.target_crs)
        return self

    @property
    def source_srid(self) -> int:
        return parse_srid(self.source_crs)

    @property
    def target_srid(self) -> int:
        return parse_srid(self.target_crs)


def parse_srid(crs: str | None) -> int:
    """
    Extract the numeric SRID from an ``AUTHORITY:CODE`` string.

    ``None`` or an empty string means unspecified and yields 0.
    """
    if not crs:
        return 0
    code = crs.rsplit(":", 1)[-1].strip()
    try:
        return int(code)
    except ValueError:
        raise ConfigurationError(f"cannot parse SRID from CRS {crs!r}") from None


def load_config(path: str | Path) -> PartitionConfig:
    """
    Read a ``key = value`` properties file into a validated PartitionConfig.

    Keys are case-insensitive; unknown keys are logged and ignored.
    """
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InputAccessError(f"cannot read configuration {config_path}: {exc}") from exc

    parser = configparser.ConfigParser(interpolation=None, delimiters=("=",))
    try:
        parser.read_string(f"[{_SECTION}]\n{text}", source=str(config_path))
    except configparser.Error as exc:
        raise ConfigurationError(f"malformed configuration {config_path}: {exc}") from exc

    values: dict[str, object] = {}
    for key, raw in parser.items(_SECTION):
        field_name = _PROPERTY_FIELDS.get(key)
        if field_name is None:
            logger.debug("Ignoring unknown configuration key %r", key)
            continue
        value = raw.strip()
        if not value:
            continue
        if field_name in _INT_FIELDS:
            try:
                values[field_name] = int(value)
            except ValueError:
                raise ConfigurationError(f"{key} must be an integer, got {value!r}") from None
        elif field_name == "delimiter":
            values[field_name] = _NAMED_DELIMITERS.get(value.lower(), value)
        elif field_name == "mode":
            values[field_name] = value.lower()
        else:
            values[field_name] = value

    return PartitionConfig(**values).validate()
