"""Tests for CLI tool."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

import pytest

from didl.cli.main import main


def test_cli_help() -> None:
    """Test CLI --help flag."""
    result = subprocess.run(
        [sys.executable, "-m", "didl.cli.main", "--help"],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert "didl: self-describing IDL codec" in result.stdout
    assert "--inspect" in result.stdout


def test_cli_version() -> None:
    """Test CLI --version flag."""
    result = subprocess.run(
        [sys.executable, "-m", "didl.cli.main", "--version"],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert "didl 0.1.0" in result.stdout


def test_cli_hash(capsys: pytest.CaptureFixture[str]) -> None:
    """Test CLI --hash prints field ids."""
    assert main(["--hash", "name", "a", "7"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["name\t1224700491", "a\t97", "7\t7"]


def test_cli_hash_numeric_overflow(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--hash", "99999999999"]) == 1
    assert "Error" in capsys.readouterr().err


def test_cli_inspect(capsys: pytest.CaptureFixture[str]) -> None:
    """Test CLI --inspect decodes against the sender's types."""
    assert main(["--inspect", "4449444c016c02617d62710100010178"]) == 0
    out = capsys.readouterr().out
    assert "1 table entries, 1 arguments" in out
    assert "type 0: record {97:nat; 98:text}" in out
    assert "arg 0: rec_" in out
    assert "{'97': 1, '98': 'x'}" in out


def test_cli_inspect_malformed(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--inspect", "4449444c01"]) == 1
    assert "Error" in capsys.readouterr().err


def test_cli_inspect_bad_hex(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--inspect", "zz"]) == 1
    assert "invalid hex" in capsys.readouterr().err


def test_cli_analyze(tmp_path: Path) -> None:
    """Test CLI --analyze with a model file."""
    model_file = tmp_path / "models.py"
    model_file.write_text(
        "from typing import Optional\n"
        "from didl import IDLModel\n"
        "\n"
        "class Person(IDLModel):\n"
        "    name: str\n"
        "    age: Optional[int] = None\n"
    )
    result = subprocess.run(
        [sys.executable, "-m", "didl.cli.main", "--analyze", str(model_file)],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert "1 model loaded." in result.stdout
    assert "Person" in result.stdout
    assert "1224700491 text" in result.stdout
    assert "(optional)" in result.stdout


def test_cli_analyze_example_file() -> None:
    """Test CLI --analyze with a real example file."""
    example_file = Path("examples/basic_usage.py")
    if not example_file.exists():
        pytest.skip("Example file not found")

    result = subprocess.run(
        [sys.executable, "-m", "didl.cli.main", "--analyze", str(example_file)],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 0
    assert "loaded" in result.stdout


def test_cli_analyze_missing_file() -> None:
    """Test CLI --analyze with missing file."""
    result = subprocess.run(
        [sys.executable, "-m", "didl.cli.main", "--analyze", "nonexistent.py"],
        capture_output=True,
        text=True,
    )
    assert result.returncode == 1
    assert "Error" in result.stderr or "not found" in result.stderr.lower()
