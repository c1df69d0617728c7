"""Basic file IO helpers."""

from __future__ import annotations

import tokenize
from pathlib import Path
from typing import Any

import yaml


def read_yaml_file(path: Path) -> Any:
    """Return the parsed YAML (or JSON) document if the file exists, otherwise ``None``."""

    if not path.exists():
        return None
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


def read_source_file(path: Path) -> str:
    """Return Python source decoded per its coding cookie, or an empty string if missing."""

    if not path.exists():
        return ""
    with tokenize.open(path) as handle:
        return handle.read()
