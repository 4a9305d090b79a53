"""Variable definitions and their persistence in a YAML file."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Union

import yaml

PathLike = Union[str, "os.PathLike[str]"]


@dataclass(frozen=True)
class Definition:
    """A variable that can be prompted for at runtime."""

    name: str
    prompt: str = ""
    default: str = ""


def _scalar_to_str(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        raise ValueError(f"expected a scalar value, got {type(value).__name__}")
    return str(value)


class FileStore:
    """Persists variable values as a flat YAML mapping."""

    def __init__(self, path: PathLike) -> None:
        self._path = path

    @property
    def path(self) -> PathLike:
        """The storage file path."""
        return self._path

    def load(self) -> dict[str, str]:
        """Read stored values; a missing file yields an empty mapping."""
        try:
            text = Path(self._path).read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}

        data = yaml.safe_load(text)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"{self._path}: expected a mapping of names to values")
        return {str(key): _scalar_to_str(value) for key, value in data.items()}

    def save(self, values: Mapping[str, str]) -> None:
        """Write values to disk, creating parent directories as needed."""
        target = Path(self._path)
        target.parent.mkdir(parents=True, exist_ok=True)
        text = yaml.safe_dump(dict(values), default_flow_style=False, allow_unicode=True)
        target.write_text(text, encoding="utf-8")