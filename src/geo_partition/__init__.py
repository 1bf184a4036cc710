"""geo-partition - Split geospatial and tabular datasets for parallel conversion."""

from geo_partition.config import PartitionConfig, load_config
from geo_partition.distributed import DistributedPartitioner, LocalExecutionEngine
from geo_partition.partition import FeaturePartitioner, TextPartitioner, get_partitioner
from geo_partition.pipeline import partition_and_convert

__all__ = [
    "DistributedPartitioner",
    "FeaturePartitioner",
    "LocalExecutionEngine",
    "PartitionConfig",
    "TextPartitioner",
    "get_partitioner",
    "load_config",
    "partition_and_convert",
]
