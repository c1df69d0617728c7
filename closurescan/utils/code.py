"""Source code helper utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Generator, Iterable

SKIPPED_DIRS = frozenset({"__pycache__", ".git", ".venv", "venv", ".tox", "node_modules"})


def iter_code_files(root_paths: Iterable[str], extensions: tuple[str, ...] = (".py",)) -> Generator[Path, None, None]:
    """Yield code files given directly or found beneath the provided directories."""

    for root in root_paths:
        base = Path(root)
        if base.is_file():
            if base.suffix in extensions:
                yield base
            continue
        for path in sorted(base.rglob("*")):
            if SKIPPED_DIRS.intersection(path.relative_to(base).parts):
                continue
            if path.suffix in extensions and path.is_file():
                yield path
