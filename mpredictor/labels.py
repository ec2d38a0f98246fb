"""Label table loading."""

import logging
from pathlib import Path

from mpredictor.errors import LabelFileUnreadable


log = logging.getLogger(__name__)


def load_labels(label_fp: str | Path, encoding: str = "utf-8") -> list[str]:
    """Read a newline-delimited label file; line j is the label of class j."""
    label_path = Path(label_fp).expanduser()
    try:
        with label_path.open("r", encoding=encoding) as stream:
            labels = [line.rstrip("\r\n") for line in stream]
    except (OSError, UnicodeDecodeError) as err:
        raise LabelFileUnreadable(f"unable to read label file {label_path}: {err}") from err
    log.debug(f"loaded {len(labels)} labels from\n    {label_path}")
    return labels
