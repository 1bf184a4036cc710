"""Command-line interface for geo-partition."""

import argparse
import logging
import sys

from geo_partition.config import PartitionConfig, load_config
from geo_partition.distributed import DistributedPartitioner
from geo_partition.errors import PartitionError
from geo_partition.partition import PARTITIONER_KINDS, EncodingPolicy, get_partitioner
from geo_partition.pipeline import partition_and_convert

logger = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure logging to write to stderr."""
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def _add_text_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--delimiter", default=",", help="Field delimiter (default: ',')")
    parser.add_argument("--quote", default='"', help="Quote character (default: '\"')")
    parser.add_argument(
        "--encoding",
        default=None,
        help="Character encoding (default: detect from byte-order mark, else UTF-8)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="geo-partition",
        description="Split geospatial and tabular datasets into balanced partitions.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    split = commands.add_parser("split", help="Split one file into partition files")
    split.add_argument("input_file", help="Text file with a header line, or a vector dataset")
    split.add_argument("output_dir", help="Directory that receives the partitions")
    split.add_argument(
        "--kind",
        choices=sorted(PARTITIONER_KINDS),
        default="text",
        help="Input format (default: text)",
    )
    split.add_argument("-n", "--partitions", type=int, required=True, help="Number of partitions")
    split.add_argument(
        "--encoding-policy",
        choices=[policy.value for policy in EncodingPolicy],
        default=EncodingPolicy.TRUNCATE.value,
        help="Handling of attribute values the target encoding cannot hold (default: truncate)",
    )
    _add_text_options(split)

    distribute = commands.add_parser(
        "distribute", help="Shard inputs and convert each shard to JSON lines"
    )
    distribute.add_argument("input_files", help="Input file, or several separated by ';'")
    distribute.add_argument("output_file", help="Output path; shard numbers are inserted before the extension")
    distribute.add_argument(
        "--format",
        choices=["csv", "vector", "geojson"],
        default="csv",
        help="Source format (default: csv)",
    )
    distribute.add_argument(
        "-n",
        "--partitions",
        type=int,
        default=0,
        help="Number of shards (default: 0, one shard per input file)",
    )
    distribute.add_argument("--workers", type=int, default=None, help="Parallel workers (default: auto)")
    _add_text_options(distribute)

    run = commands.add_parser("run", help="Run the job described by a configuration file")
    run.add_argument("config_file", help="Properties file (key = value)")
    run.add_argument(
        "--keep-partitions",
        action="store_true",
        help="Keep local partition files after conversion",
    )

    return parser


def _run_command(args: argparse.Namespace) -> None:
    if args.command == "split":
        partitioner = get_partitioner(
            args.kind,
            delimiter=args.delimiter,
            quotechar=args.quote,
            policy=args.encoding_policy,
        )
        paths = partitioner.split(args.input_file, args.output_dir, args.partitions, args.encoding)
    elif args.command == "distribute":
        config = PartitionConfig(
            input_format=args.format,
            input_files=args.input_files,
            output_file=args.output_file,
            partitions=args.partitions,
            delimiter=args.delimiter,
            quote=args.quote,
            encoding=args.encoding,
            mode="distributed",
            workers=args.workers,
        )
        paths = DistributedPartitioner(config).split()
    else:
        config = load_config(args.config_file)
        if config.mode == "distributed":
            paths = DistributedPartitioner(config).split()
        else:
            paths = partition_and_convert(config, keep_partitions=args.keep_partitions)

    for path in paths:
        print(path)


def main() -> int:
    """Entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args()

    # Configure logging based on --log-level
    log_level = getattr(logging, args.log_level)
    configure_logging(log_level)

    try:
        _run_command(args)
    except PartitionError as exc:
        logger.error("%s", exc)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
