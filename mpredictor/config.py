"""Run configuration: JSON config files merged under explicit CLI flags."""

import argparse, json, logging
from dataclasses import dataclass, field
from pathlib import Path

from mpredictor.hardware import HardwareMode
from mpredictor.ranking import DEFAULT_TOP_K


log = logging.getLogger(__name__)

# Config keys mapped to the `predict` flags they stand in for.
CONFIG_KEY_TO_FLAG = {
    "backend": "--backend",
    "model": "--model",
    "model_path": "--model",
    "labels": "--labels",
    "label_file": "--labels",
    "input": "--input",
    "mode": "--mode",
    "batch_size": "--batch-size",
    "quantized": "--quantized",
    "top_k": "--top-k",
    "all_items": "--all-items",
    "verbose": "--verbose-engine",
    "verbose_engine": "--verbose-engine",
    "profile": "--profile",
    "sha256": "--sha256",
    "cache_dir": "--cache-dir",
}
BOOL_KEYS = {"quantized", "all_items", "verbose", "verbose_engine", "profile"}


@dataclass(frozen=True)
class RunConfig:
    """Resolved settings for one `predict` run."""

    backend: str
    model_fp: Path
    label_fp: Path
    input_fps: tuple[Path, ...]
    mode: HardwareMode = HardwareMode.CPU_1
    batch_size: int = 1
    quantized: bool = False
    top_k: int = DEFAULT_TOP_K
    all_items: bool = False
    verbose: bool = False
    profile: bool = False
    sha256: str | None = None
    cache_dir: Path | None = field(default=None)

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> "RunConfig":
        """Build a run config from parsed `predict` arguments."""
        assert args.input, "at least one --input is required"
        if args.top_k < 1:
            raise ValueError(f"--top-k must be >= 1; got {args.top_k}")
        return cls(
            backend=args.backend,
            model_fp=Path(args.model).expanduser().resolve(),
            label_fp=Path(args.labels).expanduser().resolve(),
            input_fps=tuple(Path(fp).expanduser().resolve() for fp in args.input),
            mode=HardwareMode.parse(args.mode),
            batch_size=int(args.batch_size),
            quantized=bool(args.quantized),
            top_k=int(args.top_k),
            all_items=bool(args.all_items),
            verbose=bool(args.verbose_engine),
            profile=bool(args.profile),
            sha256=args.sha256,
            cache_dir=args.cache_dir,
        )


def read_config_file(config_fp: Path) -> dict[str, object]:
    """Load a JSON config object; a nested `predict` object is also accepted."""
    config_path = Path(config_fp).expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"config file does not exist: {config_path}")
    payload = json.loads(config_path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"config file must hold a JSON object: {config_path}")
    if "predict" in payload:
        payload = payload["predict"]
        if not isinstance(payload, dict):
            raise ValueError(f"config 'predict' entry must be an object: {config_path}")
    log.debug(f"read {len(payload)} config keys from\n    {config_path}")
    return payload


def _flag_present(argv: list[str], flag: str) -> bool:
    """Return True when a CLI flag is already present in argv."""
    return any(token == flag or token.startswith(f"{flag}=") for token in argv)


def build_config_cli_tokens(payload: dict[str, object], argv: list[str]) -> list[str]:
    """Translate a config payload into `predict` CLI tokens; flags already in argv win."""
    tokens: list[str] = []
    for raw_key, value in payload.items():
        key = raw_key.strip().lstrip("-").replace("-", "_")
        if key not in CONFIG_KEY_TO_FLAG:
            raise ValueError(f"unsupported config key: {raw_key}")
        flag = CONFIG_KEY_TO_FLAG[key]
        if _flag_present(argv, flag):
            continue
        if key in BOOL_KEYS:
            if not isinstance(value, bool):
                raise ValueError(f"config key '{raw_key}' must be boolean, got {type(value)!r}")
            if value:
                tokens.append(flag)
            continue
        if value is None:
            continue
        if key == "input":
            values = value if isinstance(value, list) else [value]
            tokens.extend([flag, *(str(v) for v in values)])
            continue
        tokens.extend([flag, str(value)])
    return tokens
