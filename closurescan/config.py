"""Rule settings: which report streams are emitted."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from .exceptions import ConfigError
from .report_kind import ReportKind
from .utils.fileio import read_yaml_file

ALWAYS = "always"
NEVER = "never"
MODES = (ALWAYS, NEVER)
SETTING_KEYS = ("declaration", "function", "reference")


@dataclass(frozen=True)
class ReportOptions:
    """Per-stream switches; each is ``"always"`` or ``"never"``."""

    declaration: str = ALWAYS
    function: str = ALWAYS
    reference: str = ALWAYS

    @classmethod
    def from_mapping(cls, settings: Optional[Mapping[str, Any]]) -> "ReportOptions":
        if settings is None:
            return cls()
        if not isinstance(settings, Mapping):
            raise ConfigError(f"settings must be a mapping, got {type(settings).__name__}")
        unknown = sorted(str(key) for key in settings if key not in SETTING_KEYS)
        if unknown:
            raise ConfigError(f"unknown setting(s): {', '.join(unknown)}")
        for key, value in settings.items():
            if value not in MODES:
                raise ConfigError(f"setting {key!r} must be one of {MODES}, got {value!r}")
        return cls(**dict(settings))

    def override(self, **modes: Optional[str]) -> "ReportOptions":
        """Return a copy with every non-``None`` mode in ``modes`` applied."""

        chosen = {key: value for key, value in modes.items() if value is not None}
        validated = ReportOptions.from_mapping(chosen)
        return replace(self, **{key: getattr(validated, key) for key in chosen})

    def enabled(self, kind: ReportKind) -> bool:
        if kind is ReportKind.NO_SCOPE:
            return True
        return getattr(self, kind.value) == ALWAYS


def load_options(path: Optional[Path]) -> ReportOptions:
    """Load settings from a YAML file; a missing file yields the defaults."""

    if path is None:
        return ReportOptions()
    try:
        data = read_yaml_file(path)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config at {path} is not valid YAML: {exc}") from exc
    return ReportOptions.from_mapping(data)
