"""Whole-document YAML reads and writes for the ``.skillkit`` stores.

Every store is a single document rewritten in full on each save. There is
no locking: concurrent writers race and the last one wins.
"""

from pathlib import Path

import yaml

# Raised by read_document for anything short of a missing file.
DOCUMENT_ERRORS = (yaml.YAMLError, OSError, UnicodeDecodeError)


def read_document(path: Path):
    """Parse a YAML document. Raises FileNotFoundError or one of DOCUMENT_ERRORS."""
    return yaml.safe_load(path.read_text(encoding="utf-8"))


def write_document(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False),
        encoding="utf-8",
    )
