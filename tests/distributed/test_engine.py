"""Tests for the local execution engine."""

import pytest

from geo_partition.distributed.engine import LocalExecutionEngine, balanced_slices
from geo_partition.distributed.sources import SourceDataset, normalize_row
from geo_partition.errors import ConfigurationError, DistributedTaskFailure


def make_dataset(*block_sizes: int) -> SourceDataset:
    blocks = []
    counter = 0
    for size in block_sizes:
        block = []
        for _ in range(size):
            counter += 1
            block.append({"id": counter})
        blocks.append(block)
    return SourceDataset(name="rows", columns=("id",), blocks=blocks, normalizer=normalize_row)


def fail_on_two(value: int) -> int:
    if value == 2:
        raise ValueError("boom")
    return value


class TestBalancedSlices:
    """Test cases for balanced_slices."""

    def test_sizes_differ_by_at_most_one(self) -> None:
        sizes = [s.stop - s.start for s in balanced_slices(10, 3)]
        assert sizes == [4, 3, 3]

    def test_more_shards_than_rows(self) -> None:
        sizes = [s.stop - s.start for s in balanced_slices(2, 4)]
        assert sizes == [1, 1, 0, 0]


class TestDistribute:
    """Test cases for LocalExecutionEngine.distribute."""

    def test_requested_shard_count(self) -> None:
        """Test that rows are split into contiguous balanced shards."""
        shards = LocalExecutionEngine("serial").distribute(make_dataset(10), 3)

        assert [shard.index for shard in shards] == [0, 1, 2]
        assert [len(shard) for shard in shards] == [4, 3, 3]
        ids = [record["id"] for shard in shards for record in shard.records()]
        assert ids == [str(i) for i in range(1, 11)]

    @pytest.mark.parametrize("shard_count", [None, 0])
    def test_natural_split_is_one_shard_per_block(self, shard_count) -> None:
        shards = LocalExecutionEngine("serial").distribute(make_dataset(3, 5), shard_count)

        assert [len(shard) for shard in shards] == [3, 5]

    def test_empty_shards_are_kept(self) -> None:
        shards = LocalExecutionEngine("serial").distribute(make_dataset(2), 4)

        assert [len(shard) for shard in shards] == [1, 1, 0, 0]
        assert list(shards[3].records()) == []

    def test_records_can_be_iterated_again(self) -> None:
        shard = LocalExecutionEngine("serial").distribute(make_dataset(3), 1)[0]

        assert list(shard.records()) == list(shard.records())


class TestRunPerShard:
    """Test cases for LocalExecutionEngine.run_per_shard."""

    @pytest.mark.parametrize("mode", ["serial", "threads"])
    def test_results_in_shard_order(self, mode: str) -> None:
        engine = LocalExecutionEngine(mode, workers=2)

        assert engine.run_per_shard([3, 1, 2], lambda value: value * 10) == [30, 10, 20]

    @pytest.mark.parametrize("mode", ["serial", "threads"])
    def test_failure_names_the_shard(self, mode: str) -> None:
        engine = LocalExecutionEngine(mode, workers=2)

        with pytest.raises(DistributedTaskFailure) as exc_info:
            engine.run_per_shard([0, 1, 2, 3], fail_on_two)

        assert exc_info.value.shard_index == 2
        assert isinstance(exc_info.value.__cause__, ValueError)

        assert engine.run_per_shard([0, 1], fail_on_two) == [0, 1]

    def test_no_shards(self) -> None:
        assert LocalExecutionEngine("serial").run_per_shard([], fail_on_two) == []

    def test_rejects_zero_workers(self) -> None:
        with pytest.raises(ConfigurationError):
            LocalExecutionEngine("serial", workers=0)
