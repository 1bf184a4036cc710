"""Tests for the command-line interface."""

import json
import sys
import tempfile
from pathlib import Path

from geo_partition.cli import create_parser, main


def write_csv(directory: str, n: int) -> Path:
    path = Path(directory) / "sites.csv"
    path.write_text("id,name\n" + "".join(f"{i},n{i}\n" for i in range(n)), encoding="utf-8")
    return path


def test_split_command_prints_partitions(monkeypatch, capsys) -> None:
    with tempfile.TemporaryDirectory() as tmp_dir:
        source = write_csv(tmp_dir, 20)
        out_dir = Path(tmp_dir) / "parts"
        monkeypatch.setattr(sys, "argv", ["geo-partition", "split", str(source), str(out_dir), "-n", "2"])

        assert main() == 0

        printed = capsys.readouterr().out.split()
        assert [Path(p).name for p in printed] == ["sites_part1.csv", "sites_part2.csv"]


def test_distribute_command(monkeypatch, capsys) -> None:
    monkeypatch.setenv("GP_EXECUTOR", "serial")
    with tempfile.TemporaryDirectory() as tmp_dir:
        source = write_csv(tmp_dir, 5)
        output = Path(tmp_dir) / "out.jsonl"
        monkeypatch.setattr(
            sys, "argv", ["geo-partition", "distribute", str(source), str(output), "-n", "2"]
        )

        assert main() == 0

        printed = [Path(p) for p in capsys.readouterr().out.split()]
        assert [p.name for p in printed] == ["out_0.jsonl", "out_1.jsonl"]
        with open(printed[0], encoding="utf-8") as f:
            assert json.loads(f.readline()) == {"id": "0", "name": "n0"}


def test_run_command_with_config_file(monkeypatch, capsys) -> None:
    with tempfile.TemporaryDirectory() as tmp_dir:
        source = write_csv(tmp_dir, 6)
        config = Path(tmp_dir) / "job.properties"
        config.write_text(
            f"inputFiles = {source}\n"
            f"outputFile = {Path(tmp_dir) / 'out' / 'r.jsonl'}\n"
            f"tmpDir = {Path(tmp_dir) / 'work'}\n"
            "partitions = 2\n"
            "executor = serial\n",
            encoding="utf-8",
        )
        monkeypatch.setattr(sys, "argv", ["geo-partition", "run", str(config)])

        assert main() == 0

        printed = capsys.readouterr().out.split()
        assert [Path(p).name for p in printed] == ["sites_part1.jsonl", "sites_part2.jsonl"]


def test_errors_return_exit_code_one(monkeypatch) -> None:
    with tempfile.TemporaryDirectory() as tmp_dir:
        missing = Path(tmp_dir) / "missing.csv"
        monkeypatch.setattr(sys, "argv", ["geo-partition", "split", str(missing), tmp_dir, "-n", "2"])

        assert main() == 1


def test_parser_defaults() -> None:
    args = create_parser().parse_args(["distribute", "a.csv", "out.jsonl"])

    assert args.format == "csv"
    assert args.partitions == 0
    assert args.log_level == "INFO"
