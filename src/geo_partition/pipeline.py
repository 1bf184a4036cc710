"""Two-pass local flow: split the input, then convert every partition in parallel."""

import logging
import shutil
import tempfile
import time
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from geo_partition.config import PartitionConfig
from geo_partition.converter import ConverterFactory, JsonLinesConverter
from geo_partition.distributed.engine import ExecutionEngine, LocalExecutionEngine
from geo_partition.distributed.sources import load_dataset, split_inputs
from geo_partition.errors import ConfigurationError
from geo_partition.partition import PARTITIONER_KINDS, get_partitioner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartitionConversion:
    """Work run once per local partition file: read it back and convert it."""

    config: PartitionConfig
    classification: Any
    converter_factory: ConverterFactory
    source_format: str

    def __call__(self, item: tuple[int, str, str]) -> str:
        index, partition_path, output_path = item
        dataset = load_dataset(
            partition_path,
            self.source_format,
            delimiter=self.config.delimiter,
            quotechar=self.config.quote,
            encoding=self.config.encoding,
        )
        records = (dataset.normalizer(row) for row in dataset.rows())
        converter = self.converter_factory(
            self.config,
            self.classification,
            output_path,
            self.config.source_srid,
            self.config.target_srid,
            records,
            index,
        )
        converter.apply()
        return output_path


def partition_and_convert(
    config: PartitionConfig,
    converter_factory: ConverterFactory = JsonLinesConverter,
    classification: Any = None,
    engine: ExecutionEngine | None = None,
    keep_partitions: bool = False,
) -> list[Path]:
    """
    Split every input file locally and convert the partitions concurrently.

    Pass 1 writes ``config.partitions`` partitions per input into a fresh
    working directory (under ``config.tmp_dir`` when set), one subdirectory
    per input. Pass 2 runs the converter once per partition through the
    engine. Converter outputs are named after their partition, with the
    extension of ``config.output_file``; inputs sharing a file name get their
    input index as a prefix.
    """
    config.validate()
    if not config.output_file:
        raise ConfigurationError("an output file is required for conversion")
    kind = PARTITIONER_KINDS.get(config.input_format.strip().lower())
    if kind is None:
        raise ConfigurationError(f"no local partitioner for format {config.input_format!r}")

    partitioner = get_partitioner(
        config.input_format,
        delimiter=config.delimiter,
        quotechar=config.quote,
        policy=config.encoding_policy,
    )
    engine = engine or LocalExecutionEngine(config.executor, config.workers)
    output_file = Path(config.output_file)

    total_start = time.perf_counter()
    if config.tmp_dir:
        Path(config.tmp_dir).mkdir(parents=True, exist_ok=True)
    work_dir = tempfile.mkdtemp(prefix="geo_partition_", dir=config.tmp_dir or None)

    try:
        # Pass 1: split each input into partition files.
        t1_start = time.perf_counter()
        inputs = split_inputs(config.input_files)
        stems = Counter(path.stem for path in inputs)
        items: list[tuple[int, str, str]] = []
        for input_index, input_path in enumerate(inputs):
            input_dir = Path(work_dir) / str(input_index)
            prefix = "" if stems[input_path.stem] == 1 else f"{input_index}_"
            for partition in partitioner.split(
                input_path, input_dir, config.partitions, config.encoding
            ):
                output_path = output_file.parent / f"{prefix}{partition.stem}{output_file.suffix}"
                items.append((len(items), str(partition), str(output_path)))
        t1 = time.perf_counter() - t1_start
        logger.info("Pass 1 done: %d partitions in %.2fs", len(items), t1)

        # Pass 2: convert partitions in parallel.
        t2_start = time.perf_counter()
        work = PartitionConversion(
            config=config,
            classification=classification,
            converter_factory=converter_factory,
            source_format="csv" if kind == "text" else "vector",
        )
        outputs = [Path(path) for path in engine.run_per_shard(items, work)]
        t2 = time.perf_counter() - t2_start
        logger.info("Pass 2 done: %d partitions converted in %.2fs", len(outputs), t2)

        logger.info("Conversion finished in %.2fs", time.perf_counter() - total_start)
        return outputs

    finally:
        if keep_partitions:
            logger.info("Partitions kept in %s", work_dir)
        else:
            shutil.rmtree(work_dir, ignore_errors=True)
