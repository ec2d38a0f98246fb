"""Tests for run configuration files."""

import json
from pathlib import Path

import pytest

from mpredictor.cli import _parse_arguments
from mpredictor.config import RunConfig, build_config_cli_tokens, read_config_file
from mpredictor.hardware import HardwareMode


pytestmark = pytest.mark.unit


def _write_config(tmp_path: Path, payload) -> Path:
    fp = tmp_path / "run.json"
    fp.write_text(json.dumps(payload), encoding="utf-8")
    return fp


@pytest.mark.parametrize(
    "payload",
    [
        pytest.param({"backend": "tflite"}, id="flat_payload"),
        pytest.param({"predict": {"backend": "tflite"}}, id="nested_payload"),
    ],
)
def test_read_config_file_accepts_flat_and_nested(tmp_path: Path, payload):
    """Ensure both payload shapes resolve to the predict keys."""
    assert read_config_file(_write_config(tmp_path, payload)) == {"backend": "tflite"}


@pytest.mark.parametrize(
    "payload",
    [
        pytest.param(["backend"], id="list_payload"),
        pytest.param({"predict": "tflite"}, id="nested_not_object"),
    ],
)
def test_read_config_file_rejects_non_objects(tmp_path: Path, payload):
    """Ensure non-object payloads raise ValueError."""
    with pytest.raises(ValueError):
        read_config_file(_write_config(tmp_path, payload))


def test_read_config_file_missing(tmp_path: Path):
    """Ensure a missing config raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        read_config_file(tmp_path / "absent.json")


def test_build_tokens_respects_cli_precedence():
    """Ensure flags already on the command line are not overridden."""
    tokens = build_config_cli_tokens(
        {"backend": "snpe", "top-k": 3, "quantized": True, "profile": False, "input": ["a.bin", "b.bin"]},
        ["predict", "--backend", "tflite"],
    )
    assert "--backend" not in tokens
    assert tokens[tokens.index("--top-k") + 1] == "3"
    assert "--quantized" in tokens
    assert "--profile" not in tokens
    assert tokens[tokens.index("--input") + 1 : tokens.index("--input") + 3] == ["a.bin", "b.bin"]


@pytest.mark.parametrize(
    "payload",
    [
        pytest.param({"threads": 4}, id="unknown_key"),
        pytest.param({"quantized": "yes"}, id="non_bool_flag"),
    ],
)
def test_build_tokens_rejects_bad_keys(payload):
    """Ensure unknown keys and non-boolean flags raise ValueError."""
    with pytest.raises(ValueError):
        build_config_cli_tokens(payload, ["predict"])


def test_run_config_from_config_file(tmp_path: Path):
    """Ensure a config file fills every required predict flag."""
    config_fp = _write_config(
        tmp_path,
        {
            "backend": "Qualcomm SNPE",
            "model": str(tmp_path / "m.onnx"),
            "labels": str(tmp_path / "labels.txt"),
            "input": str(tmp_path / "in.bin"),
            "mode": "DSP",
            "batch_size": 2,
            "all_items": True,
        },
    )
    args = _parse_arguments(["predict", "--config", str(config_fp), "--top-k", "2"])
    cfg = RunConfig.from_namespace(args)
    assert cfg.backend == "Qualcomm SNPE"
    assert cfg.mode is HardwareMode.DSP
    assert cfg.batch_size == 2
    assert cfg.top_k == 2
    assert cfg.all_items
    assert cfg.input_fps == ((tmp_path / "in.bin").resolve(),)
