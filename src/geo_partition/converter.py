"""Boundary to the record conversion stage run once per partition."""

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Protocol

from geo_partition.config import PartitionConfig

logger = logging.getLogger(__name__)


class Converter(Protocol):
    """Converts the records of one partition into its output file."""

    def apply(self) -> None: ...


class ConverterFactory(Protocol):
    def __call__(
        self,
        config: PartitionConfig,
        classification: Any,
        output_path: str,
        source_srid: int,
        target_srid: int,
        records: Iterator[dict[str, str]],
        partition_index: int,
    ) -> Converter: ...


class JsonLinesConverter:
    """Writes every record mapping as one JSON object per line."""

    def __init__(
        self,
        config: PartitionConfig,
        classification: Any,
        output_path: str,
        source_srid: int,
        target_srid: int,
        records: Iterator[dict[str, str]],
        partition_index: int,
    ):
        self.config = config
        self.classification = classification
        self.output_path = Path(output_path)
        self.source_srid = source_srid
        self.target_srid = target_srid
        self.records = records
        self.partition_index = partition_index

    def apply(self) -> None:
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        count = 0
        with open(self.output_path, "w", encoding="utf-8") as handle:
            for record in self.records:
                handle.write(json.dumps(record, ensure_ascii=False))
                handle.write("\n")
                count += 1
        logger.info("Partition %d: %d records written to %s", self.partition_index, count, self.output_path)
