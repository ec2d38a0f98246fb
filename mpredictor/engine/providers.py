"""Execution provider selection and diagnostics for the ORT backends."""

import logging
from typing import Any

import onnxruntime as ort


CPU_PROVIDER = "CPUExecutionProvider"
log = logging.getLogger(__name__)

ProviderSpec = tuple[str, dict[str, Any]]


def get_onnxruntime_info() -> dict[str, object]:
    """Return ORT version and provider diagnostics."""
    return {
        "version": ort.__version__,
        "available_providers": list(ort.get_available_providers()),
        "device": ort.get_device(),
    }


def resolve_providers(
    requested: list[ProviderSpec],
    available: list[str] | None = None,
    logger=None,
) -> tuple[list[str], list[dict[str, Any]]]:
    """Filter requested providers against what ORT offers and append the CPU fallback.

    Returns the provider names and their option dicts as two parallel lists,
    the shape `onnxruntime.InferenceSession` accepts.
    """
    log_ = logger or log
    if available is None:
        available = list(ort.get_available_providers())

    names: list[str] = []
    options: list[dict[str, Any]] = []
    for name, provider_options in requested:
        if name not in available:
            log_.warning(f"execution provider '{name}' is not available; falling back to {CPU_PROVIDER}")
            continue
        if name in names:
            continue
        names.append(name)
        options.append(dict(provider_options))

    # CPU stays last so unsupported nodes always have a home.
    if CPU_PROVIDER not in names:
        names.append(CPU_PROVIDER)
        options.append({})
    assert len(names) == len(options), "provider names and options must stay parallel"
    log_.debug(f"resolved execution providers {names}")
    return names, options
