"""Partitioner contract and helpers shared by the local partitioners."""

import os
from pathlib import Path
from typing import Protocol

from geo_partition.errors import ConfigurationError, InputAccessError


class Partitioner(Protocol):
    """Splits one input dataset into self-describing partition files."""

    def split(
        self,
        input_path: str | Path,
        output_dir: str | Path,
        num_partitions: int,
        encoding: str | None = None,
    ) -> list[Path]:
        """Write partitions into ``output_dir`` and return their paths in order."""
        ...


def validate_num_partitions(num_partitions: int) -> int:
    """Reject partition counts below one."""
    if isinstance(num_partitions, bool) or not isinstance(num_partitions, int):
        raise ConfigurationError(f"number of partitions must be an integer, got {num_partitions!r}")
    if num_partitions < 1:
        raise ConfigurationError(f"number of partitions must be >= 1, got {num_partitions}")
    return num_partitions


def check_input_file(input_path: str | Path) -> Path:
    """Resolve the input path, raising InputAccessError if it cannot be read."""
    path = Path(input_path)
    if not path.is_file():
        raise InputAccessError(f"input file not found: {path}")
    if not os.access(path, os.R_OK):
        raise InputAccessError(f"input file is not readable: {path}")
    return path.resolve()


def prepare_output_dir(output_dir: str | Path) -> Path:
    """Create the working directory for partitions if it does not exist."""
    path = Path(output_dir)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise InputAccessError(f"cannot create output directory {path}: {exc}") from exc
    return path.resolve()


def partition_path(output_dir: Path, source: Path, part: int) -> Path:
    """Path of the 1-based partition ``part``: ``<stem>_part<k><suffix>``."""
    return output_dir / f"{source.stem}_part{part}{source.suffix}"
