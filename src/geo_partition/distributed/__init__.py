"""Sharding datasets through an execution engine and dispatching shards to a converter."""

from geo_partition.distributed.engine import ExecutionEngine, LocalExecutionEngine, ShardHandle
from geo_partition.distributed.partitioner import DistributedPartitioner, shard_output_path
from geo_partition.distributed.sources import WKT_FIELD, SourceDataset, load_dataset

__all__ = [
    "WKT_FIELD",
    "DistributedPartitioner",
    "ExecutionEngine",
    "LocalExecutionEngine",
    "ShardHandle",
    "SourceDataset",
    "load_dataset",
    "shard_output_path",
]
