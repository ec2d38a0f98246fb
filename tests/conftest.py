"""Pytest fixtures for mpredictor tests."""

import logging, pathlib

import numpy as np
import pytest

from mpredictor.engine.base import ExecutionContext, InferenceBackend
from mpredictor.hardware import HardwareMode


ANIMAL_LABELS = ["cat", "dog", "bird", "fish", "frog"]


class EchoBackend(InferenceBackend):
    """In-memory backend whose score buffer echoes the input values."""

    name = "Tensorflow Lite"
    supported_modes = frozenset(HardwareMode)

    def __init__(self):
        self.created: list[ExecutionContext] = []
        self.destroyed: list[ExecutionContext] = []
        self.inputs: list = []

    def create(self, model_fp, batch_size, mode, verbose=False, profile=False):
        context = ExecutionContext(
            backend_name=self.name,
            model_fp=pathlib.Path(model_fp),
            mode=mode,
            batch_size=batch_size,
            options={"verbose": verbose, "profile": profile},
        )
        self.created.append(context)
        return context

    def predict(self, context, data):
        assert not context.released, "execution context already released"
        self.inputs.append(data)
        context.scores = np.asarray(data.values, dtype=np.float32).copy()

    def prediction_length(self, context):
        if context.scores is None or context.batch_size == 0:
            return 0
        return int(context.scores.size // context.batch_size)

    def predictions(self, context):
        return context.scores

    def destroy(self, context):
        assert not context.released, "execution context already released"
        context.released = True
        context.scores = None
        self.destroyed.append(context)


def _write_onnx_model(fp: pathlib.Path, elem_type_name: str, n_classes: int) -> pathlib.Path:
    """Write a one-node Identity model with a dynamic batch dim."""
    onnx = pytest.importorskip("onnx")
    from onnx import TensorProto, helper

    elem_type = getattr(TensorProto, elem_type_name)
    graph = helper.make_graph(
        [helper.make_node("Identity", ["x"], ["scores"])],
        "mpredictor-identity",
        [helper.make_tensor_value_info("x", elem_type, ["N", n_classes])],
        [helper.make_tensor_value_info("scores", elem_type, ["N", n_classes])],
    )
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid("", 13)], producer_name="mpredictor-tests")
    model.ir_version = 8
    onnx.checker.check_model(model)
    fp.parent.mkdir(parents=True, exist_ok=True)
    onnx.save(model, fp.as_posix())
    return fp


#===============================================================================
# pytest custom config------------
#===============================================================================


def pytest_runtest_teardown(item, nextitem):
    """Custom teardown message."""
    test_name = item.name
    print(f"\n{'='*20} Test completed: {test_name} {'='*20}\n\n\n")


def pytest_report_header(config):
    """Show pytest invocation arguments in the test header."""
    return f"pytest arguments: {' '.join(config.invocation_params.args)}"


# -------------------
# ----- Fixtures -----
# -------------------
@pytest.fixture(scope="session")
def logger():
    """Simple logger fixture for the function under test."""
    log = logging.getLogger("pytest")
    log.setLevel(logging.DEBUG)
    # keep handlers minimal to avoid duplicate logs across runs
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(logging.DEBUG)
        formatter = logging.Formatter("%(levelname)s:%(name)s:%(message)s")
        handler.setFormatter(formatter)
        log.addHandler(handler)
    return log


@pytest.fixture(scope="function")
def label_fp(tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the five-animal label file."""
    fp = tmp_path / "labels.txt"
    fp.write_text("\n".join(ANIMAL_LABELS) + "\n", encoding="utf-8")
    return fp


@pytest.fixture(scope="function")
def abc_label_fp(tmp_path: pathlib.Path) -> pathlib.Path:
    """Write a three-class label file."""
    fp = tmp_path / "abc.txt"
    fp.write_text("a\nb\nc\n", encoding="utf-8")
    return fp


@pytest.fixture(scope="function")
def dummy_model_fp(tmp_path: pathlib.Path) -> pathlib.Path:
    """Create a placeholder model file for backends that never parse it."""
    fp = tmp_path / "dummy.onnx"
    fp.write_bytes(b"mpredictor-test-model")
    return fp


@pytest.fixture(scope="function")
def echo_backend(monkeypatch) -> EchoBackend:
    """Route predictor creation to an in-memory echo backend."""
    backend = EchoBackend()
    monkeypatch.setattr("mpredictor.predictor.get_backend", lambda *args, **kwargs: backend)
    return backend


@pytest.fixture(scope="function")
def float_model_fp(tmp_path: pathlib.Path) -> pathlib.Path:
    """Identity float32 model over five classes."""
    pytest.importorskip("onnxruntime")
    return _write_onnx_model(tmp_path / "models" / "identity_f32.onnx", "FLOAT", len(ANIMAL_LABELS))


@pytest.fixture(scope="function")
def uint8_model_fp(tmp_path: pathlib.Path) -> pathlib.Path:
    """Identity uint8 model over four classes, standing in for a quantized classifier."""
    pytest.importorskip("onnxruntime")
    return _write_onnx_model(tmp_path / "models" / "identity_u8.onnx", "UINT8", 4)


@pytest.fixture(scope="function")
def float_bytes():
    """Encode float32 scores as raw little-endian bytes."""

    def _encode(values) -> bytes:
        return np.asarray(values, dtype="<f4").tobytes()

    return _encode
