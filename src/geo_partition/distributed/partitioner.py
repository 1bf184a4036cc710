"""Shard a dataset through an execution engine and convert every shard."""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from geo_partition.config import PartitionConfig
from geo_partition.converter import ConverterFactory, JsonLinesConverter
from geo_partition.distributed.engine import ExecutionEngine, LocalExecutionEngine, ShardHandle
from geo_partition.distributed.sources import load_dataset
from geo_partition.errors import ConfigurationError

logger = logging.getLogger(__name__)


def shard_output_path(output_file: str | Path, shard_index: int) -> Path:
    """Insert ``_<shard_index>`` right before the extension of ``output_file``."""
    path = Path(output_file)
    return path.with_name(f"{path.stem}_{shard_index}{path.suffix}")


@dataclass(frozen=True)
class ShardConversion:
    """Work run once per shard: build a converter over the shard's records and apply it."""

    config: PartitionConfig
    classification: Any
    converter_factory: ConverterFactory
    output_file: str
    source_srid: int
    target_srid: int

    def __call__(self, shard: ShardHandle) -> str:
        output_path = shard_output_path(self.output_file, shard.index)
        converter = self.converter_factory(
            self.config,
            self.classification,
            str(output_path),
            self.source_srid,
            self.target_srid,
            shard.records(),
            shard.index,
        )
        converter.apply()
        logger.debug("Shard %d (%d records) converted into %s", shard.index, len(shard), output_path)
        return str(output_path)


class DistributedPartitioner:
    """
    Load a dataset into an execution engine, shard it and hand every shard to
    a converter.

    ``config.partitions`` > 0 asks the engine for that many balanced shards;
    0 keeps the engine's natural split (one shard per input file).
    """

    def __init__(
        self,
        config: PartitionConfig,
        converter_factory: ConverterFactory = JsonLinesConverter,
        classification: Any = None,
        engine: ExecutionEngine | None = None,
    ):
        self.config = config.validate()
        self.converter_factory = converter_factory
        self.classification = classification
        self.engine = engine or LocalExecutionEngine(config.executor, config.workers)

    def split(
        self,
        input_files: str | Path | list[str | Path] | None = None,
        output_file: str | Path | None = None,
    ) -> list[Path]:
        """Shard the inputs and convert each shard; return shard outputs by index."""
        config = self.config
        inputs = input_files or config.input_files
        output = output_file or config.output_file
        if not output:
            raise ConfigurationError("an output file is required for distributed conversion")

        start = time.perf_counter()
        dataset = load_dataset(
            inputs,
            config.input_format,
            delimiter=config.delimiter,
            quotechar=config.quote,
            encoding=config.encoding,
        )
        shards = self.engine.distribute(dataset, config.partitions or None)

        work = ShardConversion(
            config=config,
            classification=self.classification,
            converter_factory=self.converter_factory,
            output_file=str(output),
            source_srid=config.source_srid,
            target_srid=config.target_srid,
        )
        outputs = [Path(path) for path in self.engine.run_per_shard(shards, work)]

        logger.info(
            "Converted %d records of %s in %d shards (%.2fs)",
            len(dataset),
            dataset.name,
            len(outputs),
            time.perf_counter() - start,
        )
        return outputs
