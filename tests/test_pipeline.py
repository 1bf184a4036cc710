"""Tests for the local split-then-convert flow."""

import json
import tempfile
from pathlib import Path

import geopandas as gpd
import pytest
from shapely.geometry import Point

from geo_partition.config import PartitionConfig
from geo_partition.errors import ConfigurationError
from geo_partition.pipeline import partition_and_convert


def read_jsonl(path: Path) -> list[dict[str, str]]:
    with open(path, encoding="utf-8") as f:
        return [json.loads(line) for line in f]


class TestPartitionAndConvert:
    """Test cases for partition_and_convert."""

    def test_converts_every_text_partition(self) -> None:
        """Test that each local partition gets its own output and no record is lost."""
        with tempfile.TemporaryDirectory() as tmp_dir:
            source = Path(tmp_dir) / "sites.csv"
            source.write_text(
                "id,wkt\n" + "".join(f"{i},POINT ({i} {i})\n" for i in range(1, 101)),
                encoding="utf-8",
            )
            work_root = Path(tmp_dir) / "work"
            config = PartitionConfig(
                input_files=str(source),
                output_file=str(Path(tmp_dir) / "out" / "result.jsonl"),
                tmp_dir=str(work_root),
                partitions=3,
                executor="serial",
            )

            paths = partition_and_convert(config)

            assert [p.name for p in paths] == [
                "sites_part1.jsonl",
                "sites_part2.jsonl",
                "sites_part3.jsonl",
            ]
            ids = [r["id"] for p in paths for r in read_jsonl(p)]
            assert ids == [str(i) for i in range(1, 101)]
            assert list(work_root.iterdir()) == []

    def test_keep_partitions(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            source = Path(tmp_dir) / "sites.csv"
            source.write_text("id\n1\n2\n", encoding="utf-8")
            work_root = Path(tmp_dir) / "work"
            config = PartitionConfig(
                input_files=str(source),
                output_file=str(Path(tmp_dir) / "result.jsonl"),
                tmp_dir=str(work_root),
                partitions=2,
                executor="serial",
            )

            partition_and_convert(config, keep_partitions=True)

            (work_dir,) = work_root.iterdir()
            input_dir = work_dir / "0"
            assert sorted(p.name for p in input_dir.iterdir()) == ["sites_part1.csv", "sites_part2.csv"]

    def test_inputs_sharing_a_file_name(self) -> None:
        """Test that same-named inputs keep separate partitions and outputs."""
        with tempfile.TemporaryDirectory() as tmp_dir:
            sources = []
            for tag in ("A", "B"):
                folder = Path(tmp_dir) / tag.lower()
                folder.mkdir()
                source = folder / "data.csv"
                source.write_text(
                    "id,tag\n" + "".join(f"{i},{tag}\n" for i in range(4)), encoding="utf-8"
                )
                sources.append(source)
            config = PartitionConfig(
                input_files=";".join(str(s) for s in sources),
                output_file=str(Path(tmp_dir) / "out" / "result.jsonl"),
                tmp_dir=str(Path(tmp_dir) / "work"),
                partitions=2,
                executor="serial",
            )

            paths = partition_and_convert(config)

            assert [p.name for p in paths] == [
                "0_data_part1.jsonl",
                "0_data_part2.jsonl",
                "1_data_part1.jsonl",
                "1_data_part2.jsonl",
            ]
            tags = [[r["tag"] for r in read_jsonl(p)] for p in paths]
            assert sum(tags[:2], []) == ["A"] * 4
            assert sum(tags[2:], []) == ["B"] * 4

    def test_feature_partitions(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            source = Path(tmp_dir) / "points.shp"
            gpd.GeoDataFrame(
                {"id": list(range(5))}, geometry=[Point(i, 0) for i in range(5)], crs="EPSG:4326"
            ).to_file(source)
            config = PartitionConfig(
                input_format="shapefile",
                input_files=str(source),
                output_file=str(Path(tmp_dir) / "out" / "points.jsonl"),
                tmp_dir=str(Path(tmp_dir) / "work"),
                partitions=2,
                executor="threads",
            )

            paths = partition_and_convert(config)

            assert [len(read_jsonl(p)) for p in paths] == [3, 2]
            assert read_jsonl(paths[1])[0] == {"id": "3", "wkt_geometry": "POINT (3 0)"}

    def test_requires_partition_count(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            source = Path(tmp_dir) / "sites.csv"
            source.write_text("id\n1\n", encoding="utf-8")
            config = PartitionConfig(
                input_files=str(source),
                output_file=str(Path(tmp_dir) / "result.jsonl"),
                tmp_dir=str(Path(tmp_dir) / "work"),
                executor="serial",
            )

            with pytest.raises(ConfigurationError):
                partition_and_convert(config)

    def test_requires_output(self) -> None:
        with pytest.raises(ConfigurationError):
            partition_and_convert(PartitionConfig(input_files="a.csv", partitions=2))
