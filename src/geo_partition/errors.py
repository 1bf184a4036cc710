"""Exception hierarchy for partitioning and shard dispatch."""


class PartitionError(Exception):
    """Base class for every error raised by geo_partition."""


class ConfigurationError(PartitionError, ValueError):
    """Invalid settings: partition count, format tag, SRID, encoding policy."""


class InputAccessError(PartitionError, OSError):
    """The source dataset is missing or cannot be read."""


class FormatError(PartitionError):
    """The source content or a partition schema cannot be handled.

    Partitions written before the failure are left on disk.
    """


class DistributedTaskFailure(PartitionError):
    """Work on one shard raised; the whole job is treated as failed."""

    def __init__(self, shard_index: int, message: str):
        super().__init__(f"shard {shard_index}: {message}")
        self.shard_index = shard_index
