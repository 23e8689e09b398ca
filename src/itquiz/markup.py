from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Mapping

from bs4 import BeautifulSoup

__all__ = [
    "MalformedMarkupError",
    "MarkupExtraction",
    "RubyOccurrenceIndex",
    "extract_markup",
    "sanitize_display_text",
]

_RUBY_SPLIT_RE = re.compile(r"(<ruby>.+?</ruby>)")
_RUBY_BASE_RE = re.compile(r"<rb>(.+?)</rb>")
_RUBY_READING_RE = re.compile(r"<rt>(.+?)</rt>")
_EMPHASIS_SPLIT_RE = re.compile(r"(<em>.+?</em>)")
_EMPHASIS_RE = re.compile(r"<em>(.+?)</em>")


class MalformedMarkupError(ValueError):
    """Raised when a ruby span lacks its base text or its reading."""


@dataclass(frozen=True)
class RubyOccurrenceIndex:
    """
    Per-document ruby bookkeeping.

    ``base_texts`` keeps the order in which base texts first appear in the
    marked-up source. ``occurrences`` counts every literal occurrence of each
    base text across the whole document (including occurrences that sit inside
    another base text's ruby span), and ``readings`` maps occurrence index to
    the reading given by the ruby span at that position. Occurrences that came
    from plain text have no reading.
    """

    base_texts: tuple[str, ...] = ()
    occurrences: Mapping[str, int] = field(default_factory=dict)
    readings: Mapping[str, Mapping[int, str]] = field(default_factory=dict)

    def reading_for(self, base_text: str, index: int) -> str | None:
        return self.readings.get(base_text, {}).get(index)


@dataclass(frozen=True)
class MarkupExtraction:
    plain_text: str
    ruby: RubyOccurrenceIndex
    emphasized_ranges: tuple[tuple[int, int], ...] = ()


def extract_markup(text: str) -> MarkupExtraction:
    """
    Strip ruby and emphasis markup from ``text``.

    Ruby spans are removed first (keeping the base text), then ``<em>`` spans
    are removed and recorded as half-open ranges over the final plain text.
    """
    base_texts = tuple(dict.fromkeys(_RUBY_BASE_RE.findall(text)))
    occurrences: dict[str, int] = {base: 0 for base in base_texts}
    readings: dict[str, dict[int, str]] = {base: {} for base in base_texts}

    pieces: list[str] = []
    for part in _RUBY_SPLIT_RE.split(text):
        if part.startswith("<ruby>"):
            base_match = _RUBY_BASE_RE.search(part)
            reading_match = _RUBY_READING_RE.search(part)
            if base_match is None or reading_match is None:
                raise MalformedMarkupError(f"Ruby span without base text or reading: {part}")
            base = base_match.group(1)
            if base not in readings:
                # A stray <rb> earlier in the text swallowed this span's base.
                raise MalformedMarkupError(f"Ruby base text {base!r} is not well-formed: {part}")
            readings[base][occurrences[base]] = reading_match.group(1)
            occurrences[base] += 1
            # Other base texts nested in this span are still counted.
            for other in base_texts:
                if other != base:
                    occurrences[other] += base.count(other)
            pieces.append(base)
        else:
            for other in base_texts:
                occurrences[other] += part.count(other)
            pieces.append(part)
    text_without_ruby = "".join(pieces)

    plain = ""
    emphasized: list[tuple[int, int]] = []
    for part in _EMPHASIS_SPLIT_RE.split(text_without_ruby):
        match = _EMPHASIS_RE.fullmatch(part)
        if match is not None:
            inner = match.group(1)
            emphasized.append((len(plain), len(plain) + len(inner)))
            plain += inner
        else:
            plain += part

    return MarkupExtraction(
        plain_text=plain,
        ruby=RubyOccurrenceIndex(
            base_texts=base_texts,
            occurrences=occurrences,
            readings=readings,
        ),
        emphasized_ranges=tuple(emphasized),
    )


def sanitize_display_text(text: str) -> str:
    """
    Collapse display markup to what a plain-text speech engine should read.

    Ruby bases and their fallback parentheses are dropped so only the reading
    remains; all other tags are unwrapped and HTML entities decoded.
    """
    soup = BeautifulSoup(text, "html.parser")
    for tag in soup.find_all(["rb", "rp"]):
        tag.decompose()
    return soup.get_text()
