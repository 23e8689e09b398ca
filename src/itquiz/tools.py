from __future__ import annotations

import importlib
import os
from dataclasses import dataclass
from pathlib import Path

__all__ = ["UNIDIC_DIR_ENV", "UniDicStatus", "get_unidic_dicdir", "resolve_unidic_status"]

UNIDIC_DIR_ENV = "ITQUIZ_UNIDIC_DIR"


@dataclass(slots=True)
class UniDicStatus:
    path: Path | None
    source: str | None


def _has_dicrc(path: Path) -> bool:
    return (path / "dicrc").exists()


def _package_dicdir(module_name: str) -> Path | None:
    try:
        module = importlib.import_module(module_name)
    except ImportError:
        return None
    dicdir = getattr(module, "DICDIR", "")
    if not dicdir:
        return None
    candidate = Path(dicdir)
    return candidate if _has_dicrc(candidate) else None


def resolve_unidic_status() -> UniDicStatus:
    env_dir = os.environ.get(UNIDIC_DIR_ENV)
    if env_dir:
        candidate = Path(env_dir).expanduser()
        if _has_dicrc(candidate):
            return UniDicStatus(path=candidate, source="env")
    for module_name in ("unidic", "unidic_lite"):
        dicdir = _package_dicdir(module_name)
        if dicdir is not None:
            return UniDicStatus(path=dicdir, source=module_name)
    return UniDicStatus(path=None, source=None)


def get_unidic_dicdir() -> Path | None:
    return resolve_unidic_status().path
