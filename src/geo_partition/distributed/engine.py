"""Execution engine abstraction: sharding a dataset and running work per shard."""

import logging
import time
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from geo_partition.distributed.execution import describe_executor, get_executor_class
from geo_partition.distributed.sources import Normalizer, Record, SourceDataset
from geo_partition.errors import ConfigurationError, DistributedTaskFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShardHandle:
    """One shard of a distributed dataset: its index and native rows."""

    index: int
    rows: list[Any]
    normalizer: Normalizer

    def __len__(self) -> int:
        return len(self.rows)

    def records(self) -> Iterator[Record]:
        """Lazily normalize the shard's rows; each call starts a new pass."""
        return (self.normalizer(row) for row in self.rows)


type ShardWork[T, R] = Callable[[T], R]


class ExecutionEngine(Protocol):
    """Parallel-execution capability the distributed partitioner depends on."""

    def distribute(self, dataset: SourceDataset, shard_count: int | None) -> list[ShardHandle]:
        """Split ``dataset`` into shards; ``None`` keeps the engine's natural split."""
        ...

    def run_per_shard[T, R](self, shards: Sequence[T], work: ShardWork[T, R]) -> list[R]:
        """Run ``work`` once per shard and block until every shard is done.

        Results come back in shard order. A failing shard raises
        DistributedTaskFailure carrying its position in ``shards``.
        """
        ...


def balanced_slices(total: int, shard_count: int) -> list[slice]:
    """Contiguous slices whose sizes differ by at most one."""
    size, remainder = divmod(total, shard_count)
    slices = []
    start = 0
    for index in range(shard_count):
        stop = start + size + (1 if index < remainder else 0)
        slices.append(slice(start, stop))
        start = stop
    return slices


class LocalExecutionEngine:
    """
    In-process engine backed by concurrent.futures.

    Shards are contiguous, so records keep their source order inside a shard.
    The executor (processes, threads or serial) follows ``mode`` or the
    GP_EXECUTOR environment variable. Work functions and shard rows must be
    picklable when running on processes.
    """

    def __init__(self, mode: str | None = None, workers: int | None = None):
        if workers is not None and workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {workers}")
        self.mode = mode
        self.workers = workers

    def distribute(self, dataset: SourceDataset, shard_count: int | None) -> list[ShardHandle]:
        if shard_count is None or shard_count <= 0:
            blocks = dataset.blocks
        else:
            rows = list(dataset.rows())
            blocks = [rows[part] for part in balanced_slices(len(rows), shard_count)]

        shards = [
            ShardHandle(index=index, rows=block, normalizer=dataset.normalizer)
            for index, block in enumerate(blocks)
        ]
        logger.info(
            "Distributed %d records of %s into %d shards",
            len(dataset),
            dataset.name,
            len(shards),
        )
        return shards

    def run_per_shard[T, R](self, shards: Sequence[T], work: ShardWork[T, R]) -> list[R]:
        executor_class = get_executor_class(self.mode)
        workers_desc = "auto" if self.workers is None else str(self.workers)
        logger.info(
            "Running %d shards: executor=%s, workers=%s",
            len(shards),
            describe_executor(executor_class),
            workers_desc,
        )

        start = time.perf_counter()
        results: list[R] = []
        if executor_class is None:
            for index, shard in enumerate(shards):
                try:
                    results.append(work(shard))
                except Exception as exc:
                    raise DistributedTaskFailure(index, repr(exc)) from exc
        else:
            with executor_class(max_workers=self.workers) as executor:
                futures = [executor.submit(work, shard) for shard in shards]
                for index, future in enumerate(futures):
                    try:
                        results.append(future.result())
                    except Exception as exc:
                        executor.shutdown(wait=True, cancel_futures=True)
                        raise DistributedTaskFailure(index, repr(exc)) from exc

        logger.info("All %d shards done in %.2fs", len(shards), time.perf_counter() - start)
        return results
