"""Choosing the concurrent.futures executor that runs shard and partition work."""

import os
import sys
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor

type ExecutorClass = type[ThreadPoolExecutor] | type[ProcessPoolExecutor] | None

# Environment variable naming the shard executor: processes, threads or serial.
GP_EXECUTOR_ENV = "GP_EXECUTOR"

EXECUTOR_MODES: dict[str, ExecutorClass] = {
    "processes": ProcessPoolExecutor,
    "threads": ThreadPoolExecutor,
    "serial": None,
}


def is_gil_enabled() -> bool:
    """True unless running on a free-threaded interpreter with the GIL off."""
    try:
        return sys._is_gil_enabled()
    except AttributeError:
        return True


def get_executor_class(mode: str | None = None) -> ExecutorClass:
    """
    Resolve the executor that runs one work item per shard.

    ``mode`` (usually ``PartitionConfig.executor``) wins over GP_EXECUTOR.
    Without either, shards go to threads on a free-threaded build and to
    processes otherwise. ``None`` means the shards run one after another
    in the calling thread.
    """
    name = (mode or os.environ.get(GP_EXECUTOR_ENV, "")).strip().lower()
    if name in EXECUTOR_MODES:
        return EXECUTOR_MODES[name]
    return ProcessPoolExecutor if is_gil_enabled() else ThreadPoolExecutor


def describe_executor(executor_class: ExecutorClass) -> str:
    """Mode name of ``executor_class``, for log messages."""
    for name, candidate in EXECUTOR_MODES.items():
        if candidate is executor_class:
            return name
    return executor_class.__name__
