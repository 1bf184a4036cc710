"""Byte-size balanced splitting of header-delimited text files."""

import csv
import logging
import time
from pathlib import Path
from typing import TextIO

from geo_partition.errors import FormatError
from geo_partition.partition.base import (
    check_input_file,
    partition_path,
    prepare_output_dir,
    validate_num_partitions,
)
from geo_partition.partition.encoding import TextEncoding, resolve_text_encoding
from geo_partition.partition.types import BUFFER_SIZE, Partition, PartitionPlan, PartitionStats

logger = logging.getLogger(__name__)

BOM_CHAR = "\ufeff"


def parse_header(header: str, delimiter: str = ",", quotechar: str = '"') -> list[str]:
    """Split a header line into column names using CSV quoting rules."""
    line = header.lstrip(BOM_CHAR).rstrip("\r\n")
    if not line.strip():
        raise FormatError("header line is blank")
    try:
        row = next(csv.reader([line], delimiter=delimiter, quotechar=quotechar), [])
    except csv.Error as exc:
        raise FormatError(f"malformed header line: {exc}") from exc
    return [column.strip() for column in row]


class TextPartitioner:
    """
    Split a text file with a header line into partitions of similar byte size.

    Every partition starts with the source header, which counts towards its
    size. A partition is closed before the line that would take it past
    ``total_bytes / num_partitions``; the last partition takes whatever
    remains, so no more than ``num_partitions`` files are written. A partition
    always holds at least one data line, even if that line alone is larger
    than the target.
    """

    def __init__(self, delimiter: str = ",", quotechar: str = '"'):
        self.delimiter = delimiter
        self.quotechar = quotechar

    def split(
        self,
        input_path: str | Path,
        output_dir: str | Path,
        num_partitions: int,
        encoding: str | None = None,
    ) -> list[Path]:
        num_partitions = validate_num_partitions(num_partitions)
        source = check_input_file(input_path)
        out_dir = prepare_output_dir(output_dir)
        text_encoding = resolve_text_encoding(source, encoding)

        total_bytes = source.stat().st_size
        plan = PartitionPlan(num_partitions, total_bytes / num_partitions)
        logger.info(
            "Splitting %s into %d partitions (encoding=%s, target %.2f MB each)",
            source.name,
            num_partitions,
            text_encoding.name,
            plan.threshold / (1024 * 1024),
        )

        start = time.perf_counter()
        try:
            stats = self._split_lines(source, out_dir, plan, text_encoding)
        except UnicodeDecodeError as exc:
            raise FormatError(f"{source} is not valid {text_encoding.name}: {exc}") from exc

        elapsed = time.perf_counter() - start
        logger.info(
            "Split %s: %d lines into %d partitions in %.2fs",
            source.name,
            stats.records_read,
            len(stats.partitions),
            elapsed,
        )
        return [partition.path for partition in stats.partitions]

    def _split_lines(
        self,
        source: Path,
        out_dir: Path,
        plan: PartitionPlan,
        text_encoding: TextEncoding,
    ) -> PartitionStats:
        codec = text_encoding.name
        stats = PartitionStats()

        with open(source, encoding=codec, newline="", buffering=BUFFER_SIZE) as reader:
            if text_encoding.bom:
                reader.read(1)

            header = reader.readline()
            if not header:
                raise FormatError(f"{source} is empty; a header line is required")
            columns = parse_header(header, self.delimiter, self.quotechar)
            logger.debug("Header of %s has %d columns: %s", source.name, len(columns), columns)
            stats.records_read = 1

            header_bytes = len(text_encoding.bom) + len(header.encode(codec))

            part = 1
            path = partition_path(out_dir, source, part)
            writer = self._open_partition(path, text_encoding, header)
            size = header_bytes
            data_lines = 0

            try:
                for line in reader:
                    stats.records_read += 1
                    line_bytes = len(line.encode(codec))

                    # The last partition absorbs the remainder.
                    if (
                        data_lines > 0
                        and part < plan.num_partitions
                        and size + line_bytes > plan.threshold
                    ):
                        writer.close()
                        self._record_partition(stats, part, path, data_lines, size, columns)

                        part += 1
                        path = partition_path(out_dir, source, part)
                        writer = self._open_partition(path, text_encoding, header)
                        size = header_bytes
                        data_lines = 0

                    writer.write(line)
                    size += line_bytes
                    data_lines += 1
            finally:
                writer.close()

            self._record_partition(stats, part, path, data_lines, size, columns)

        stats.records_written = stats.records_read
        return stats

    @staticmethod
    def _open_partition(path: Path, text_encoding: TextEncoding, header: str) -> TextIO:
        """Open a partition file and write the BOM (if any) and header."""
        handle = open(  # noqa: SIM115
            path, "w", encoding=text_encoding.name, newline="", buffering=BUFFER_SIZE
        )
        if text_encoding.bom:
            handle.write(BOM_CHAR)
        handle.write(header)
        return handle

    @staticmethod
    def _record_partition(
        stats: PartitionStats,
        part: int,
        path: Path,
        data_lines: int,
        size: int,
        columns: list[str],
    ) -> None:
        stats.partitions.append(Partition(part, path, data_lines, tuple(columns)))
        stats.bytes_written += size
        logger.debug("Closed partition %d: %s (%d data lines, %d bytes)", part, path.name, data_lines, size)
