"""Model file integrity: SHA256 digests checked before a session is loaded."""

import hashlib
import logging
from pathlib import Path

from mpredictor.errors import ModelChecksumMismatch


log = logging.getLogger(__name__)

_READ_BLOCK = 1 << 20


def model_digest(model_fp: str | Path) -> str:
    """Return the hex SHA256 of a model file, read in 1 MiB blocks."""
    model_path = Path(model_fp)
    digest = hashlib.sha256()
    with model_path.open("rb") as stream:
        for block in iter(lambda: stream.read(_READ_BLOCK), b""):
            digest.update(block)
    return digest.hexdigest()


def check_model_integrity(model_fp: str | Path, expected_sha256: str, logger=None) -> str:
    """Compare a model file against `expected_sha256` and return the digest.

    The comparison ignores case and surrounding whitespace in `expected_sha256`.
    Raises ModelChecksumMismatch when the digests differ.
    """
    log_ = logger or log
    expected = expected_sha256.strip().lower()
    if not expected:
        raise ValueError("expected model sha256 is empty")

    actual = model_digest(model_fp)
    if actual != expected:
        raise ModelChecksumMismatch(
            f"checksum mismatch for model {model_fp}: expected {expected}, got {actual}"
        )
    log_.debug(f"model digest {actual[:12]} matches for\n    {model_fp}")
    return actual
