"""Command line interface for mpredictor."""

import argparse, logging, sys
from pathlib import Path

from tqdm import tqdm

from mpredictor.config import RunConfig, build_config_cli_tokens, read_config_file
from mpredictor.engine import AcceleratedBackend, LocalDenseBackend, get_onnxruntime_info
from mpredictor.hardware import HardwareMode
from mpredictor.predictor import create
from mpredictor.ranking import DEFAULT_SEPARATOR, DEFAULT_TOP_K


log = logging.getLogger(__name__)

BACKEND_TYPES = (LocalDenseBackend, AcceleratedBackend)


def _resolve_log_level(args: argparse.Namespace) -> int:
    """Resolve effective logging level from explicit level or verbosity flags."""
    if args.log_level is not None:
        return getattr(logging, args.log_level)

    # Start from INFO, then apply -v and -q offsets with DEBUG/ERROR clamp.
    level = logging.INFO - (10 * int(args.verbose)) + (10 * int(args.quiet))
    return max(logging.DEBUG, min(logging.ERROR, level))


def _configure_logging(args: argparse.Namespace) -> None:
    """Configure stdlib logging using Python default handler routing."""
    effective_level = _resolve_log_level(args)
    root_logger = logging.getLogger()
    root_logger.setLevel(effective_level)
    if not root_logger.handlers:
        logging.basicConfig(level=effective_level)


def _find_flag_value(argv: list[str], flag: str) -> str | None:
    """Return the raw value for a CLI flag, supporting '--flag value' and '--flag=value'."""
    for idx, token in enumerate(argv):
        if token == flag:
            return argv[idx + 1] if idx + 1 < len(argv) else None
        if token.startswith(f"{flag}="):
            return token.split("=", 1)[1]
    return None


def _inject_config_args(argv: list[str] | None) -> list[str]:
    """Merge `predict --config` file values into argv before strict argparse validation."""
    argv_tokens = list(sys.argv[1:]) if argv is None else list(argv)
    if "predict" not in argv_tokens:
        return argv_tokens
    config_raw = _find_flag_value(argv_tokens, "--config")
    if config_raw is None:
        return argv_tokens
    payload = read_config_file(Path(config_raw))
    return argv_tokens + build_config_cli_tokens(payload, argv_tokens)


def _iter_inputs(input_fps: tuple[Path, ...]):
    """Yield input paths, with a progress bar for multi-file runs on a terminal."""
    if len(input_fps) > 1 and sys.stderr.isatty():
        return tqdm(input_fps, desc="predict", total=len(input_fps), unit="input")
    return iter(input_fps)


def run_predict(cfg: RunConfig) -> list[str]:
    """Run every input of `cfg` through one predictor and return printable result rows."""
    for input_fp in cfg.input_fps:
        if not input_fp.is_file():
            raise FileNotFoundError(f"input file does not exist: {input_fp}")

    rows: list[str] = []
    with create(
        cfg.backend,
        cfg.model_fp,
        mode=cfg.mode,
        batch_size=cfg.batch_size,
        verbose=cfg.verbose,
        profile=cfg.profile,
        sha256=cfg.sha256,
        cache_dir=cfg.cache_dir,
        logger=log,
    ) as handle:
        for input_fp in _iter_inputs(cfg.input_fps):
            handle.predict(input_fp.read_bytes(), quantized=cfg.quantized)
            ranked = handle.read_results(cfg.label_fp, top_k=cfg.top_k)
            prefix = f"{input_fp.name}\t" if len(cfg.input_fps) > 1 else ""
            items = ranked if cfg.all_items else ranked[:1]
            for result in items:
                item_prefix = f"{result.item}\t" if cfg.all_items else ""
                rows.append(f"{prefix}{item_prefix}{result.concatenate(cfg.top_k, sep=DEFAULT_SEPARATOR)}")
    return rows


def main_cli(args: argparse.Namespace) -> int:
    """Run the CLI command selected by parsed arguments."""
    if args.command == "predict":
        for row in run_predict(RunConfig.from_namespace(args)):
            print(row)
        return 0

    if args.command == "modes":
        for mode in HardwareMode:
            supported = [backend.name for backend in BACKEND_TYPES if mode in backend.supported_modes]
            print(f"{mode.value}\t{mode.name}\t{','.join(supported)}")
        return 0

    if args.command == "backends":
        for backend in BACKEND_TYPES:
            modes = ",".join(mode.name for mode in sorted(backend.supported_modes))
            print(f"{backend.name}\t{modes}")
        return 0

    if args.command == "doctor":
        ort_info = get_onnxruntime_info()
        print(f"onnxruntime_device={ort_info['device']}")
        print(f"onnxruntime_version={ort_info['version']}")
        print(f"onnxruntime_available_providers={','.join(ort_info['available_providers'])}")
        return 0

    raise ValueError(f"unsupported command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    """Run the mpredictor CLI and return an exit code."""
    args = _parse_arguments(argv)
    _configure_logging(args)
    try:
        return main_cli(args)
    except Exception as err:
        log.error(f"{err}")
        log.debug("unhandled CLI exception", exc_info=True)
        return 1


def _parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for mpredictor."""
    parser = argparse.ArgumentParser(prog="mpredictor", description="mpredictor command line interface.")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (repeatable).",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Decrease logging verbosity (repeatable).",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default=None,
        help="Explicit log level override.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    predict_parser = subparsers.add_parser("predict", help="Classify raw input buffers.")
    predict_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional JSON file with CLI-equivalent predict params.",
    )
    predict_parser.add_argument(
        "--backend",
        required=True,
        help="Backend identifier ('Tensorflow Lite'/'tflite' or 'Qualcomm SNPE'/'snpe').",
    )
    predict_parser.add_argument("--model", required=True, help="Model file path.")
    predict_parser.add_argument("--labels", required=True, help="Newline-delimited label file path.")
    predict_parser.add_argument(
        "--input",
        nargs="+",
        required=True,
        help="Raw little-endian input buffer file(s); one forward pass per file.",
    )
    predict_parser.add_argument(
        "--mode",
        default="CPU_1",
        help="Hardware mode name or value (CPU_1..CPU_8, GPU, NNAPI, DSP).",
    )
    predict_parser.add_argument("--batch-size", type=int, default=1, help="Items per input buffer.")
    predict_parser.add_argument(
        "--quantized",
        action="store_true",
        help="Read inputs as int32 values for the quantized path instead of float32.",
    )
    predict_parser.add_argument(
        "--top-k",
        type=int,
        default=DEFAULT_TOP_K,
        help="Number of ranked labels to print per item.",
    )
    predict_parser.add_argument(
        "--all-items",
        action="store_true",
        help="Print rankings for every batch item instead of item 0 only.",
    )
    predict_parser.add_argument(
        "--verbose-engine",
        action="store_true",
        help="Enable verbose engine logging.",
    )
    predict_parser.add_argument(
        "--profile",
        action="store_true",
        help="Write engine profiling output under the cache directory.",
    )
    predict_parser.add_argument("--sha256", default=None, help="Expected model SHA256 digest.")
    predict_parser.add_argument(
        "--cache-dir",
        type=Path,
        default=None,
        help="Optional cache directory for profiling output.",
    )

    subparsers.add_parser("modes", help="List hardware modes and supporting backends.")
    subparsers.add_parser("backends", help="List recognized backends.")
    subparsers.add_parser("doctor", help="Report runtime dependency diagnostics.")
    return parser.parse_args(_inject_config_args(argv))


if __name__ == "__main__":
    raise SystemExit(main())
