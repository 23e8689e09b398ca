from __future__ import annotations

import os
import shlex
import threading
import warnings
from dataclasses import dataclass

from .tools import resolve_unidic_status

__all__ = [
    "MorphToken",
    "NLPBackend",
    "NLPBackendUnavailableError",
    "WHITESPACE_POS",
    "WHITESPACE_DETAIL",
]

# Whitespace dropped by MeCab is re-emitted with the tags kuromoji uses for it.
WHITESPACE_POS = "記号"
WHITESPACE_DETAIL = "空白"


class NLPBackendUnavailableError(RuntimeError):
    """Raised when the MeCab backend cannot be initialized."""


@dataclass(frozen=True)
class MorphToken:
    surface: str
    pos: str | None = None
    pos_detail_1: str | None = None


class NLPBackend:
    """Fugashi-based tokenizer producing tokens that cover the input exactly."""

    def __init__(self) -> None:
        try:
            from fugashi import Tagger  # type: ignore
        except ImportError as exc:
            raise NLPBackendUnavailableError(
                "Clause segmentation requires 'fugashi' (MeCab) to be installed."
            ) from exc

        status = resolve_unidic_status()
        dicdir = status.path
        try:
            if dicdir is not None and status.source == "env":
                mecabrc = dicdir / "mecabrc"
                rcfile = str(mecabrc) if mecabrc.exists() else os.devnull
                self._tagger = Tagger(f"-d {shlex.quote(str(dicdir))} -r {shlex.quote(rcfile)}")
            elif dicdir is not None:
                # fugashi locates the unidic / unidic_lite packages on its own.
                self._tagger = Tagger()
            else:
                warnings.warn(
                    "UniDic not detected; falling back to the default MeCab dictionary.",
                    RuntimeWarning,
                    stacklevel=2,
                )
                self._tagger = Tagger()
        except RuntimeError as exc:
            raise NLPBackendUnavailableError(
                f"Failed to initialize MeCab dictionary at '{dicdir}': {exc}"
            ) from exc
        self._lock = threading.Lock()

    def tokenize(self, text: str) -> list[MorphToken]:
        tokens: list[MorphToken] = []
        if not text:
            return tokens
        with self._lock:
            raw_tokens = [
                (
                    raw.surface,
                    self._extract_feature(raw, "pos1", 0),
                    self._extract_feature(raw, "pos2", 1),
                )
                for raw in self._tagger(text)
            ]
        pos = 0
        for surface, pos_label, detail in raw_tokens:
            if not surface:
                continue
            start = text.find(surface, pos)
            if start == -1:
                start = pos
            if start > pos:
                tokens.append(MorphToken(text[pos:start], WHITESPACE_POS, WHITESPACE_DETAIL))
            tokens.append(MorphToken(surface=surface, pos=pos_label, pos_detail_1=detail))
            pos = start + len(surface)
        if pos < len(text):
            tokens.append(MorphToken(text[pos:], WHITESPACE_POS, WHITESPACE_DETAIL))
        return tokens

    def _extract_feature(self, token, attr: str, index: int) -> str | None:
        feature = getattr(token, "feature", None)
        if feature is None:
            return None
        if hasattr(feature, attr):
            value = getattr(feature, attr)
        else:
            try:
                value = feature[index]
            except (IndexError, TypeError, KeyError):
                value = None
        if value and value != "*":
            return str(value)
        return None
