from __future__ import annotations

import re
from collections import Counter
from typing import Literal, Sequence

from .markup import RubyOccurrenceIndex

__all__ = [
    "KANA_SUBSTITUTIONS",
    "RubyOccurrenceMismatchError",
    "SSML_EMPHASIS_END",
    "SSML_EMPHASIS_START",
    "reconstruct_clauses",
    "to_html_clauses",
    "to_ssml_clauses",
]

Mode = Literal["html", "ssml"]

HTML_EMPHASIS_START = "<em>"
HTML_EMPHASIS_END = "</em>"
SSML_EMPHASIS_START = '<emphasis level="strong"><prosody pitch="+3st">'
SSML_EMPHASIS_END = "</prosody></emphasis>"

# Whole speech clauses the synthesizer tends to misread.
KANA_SUBSTITUTIONS: dict[str, str] = {
    "何と": "なんと",
    "何でしょう": "なんでしょう",
}


class RubyOccurrenceMismatchError(RuntimeError):
    """Raised when reconstruction consumes a different number of ruby readings than were recorded."""

    def __init__(self, mode: str, expected: dict[str, int], actual: dict[str, int]) -> None:
        super().__init__(f"Ruby text occurrences mismatch while converting to {mode}")
        self.mode = mode
        self.expected = expected
        self.actual = actual


def _clause_ranges(
    emphasized_ranges: Sequence[tuple[int, int]],
    offset: int,
    length: int,
) -> list[tuple[int, int]]:
    ranges: list[tuple[int, int]] = []
    for start, end in emphasized_ranges:
        local_start = min(max(start - offset, 0), length)
        local_end = min(max(end - offset, 0), length)
        if local_start != local_end:
            ranges.append((local_start, local_end))
    return ranges


def _apply_emphasis(clause: str, ranges: list[tuple[int, int]], start_tag: str, end_tag: str) -> str:
    pieces: list[str] = []
    cursor = 0
    for start, end in ranges:
        pieces.append(clause[cursor:start])
        pieces.append(f"{start_tag}{clause[start:end]}{end_tag}")
        cursor = end
    pieces.append(clause[cursor:])
    return "".join(pieces)


def _html_ruby(base: str, reading: str) -> str:
    return f"<ruby><rb>{base}</rb><rp>（</rp><rt>{reading}</rt><rp>）</rp></ruby>"


def reconstruct_clauses(
    clauses: Sequence[str],
    mode: Mode,
    ruby: RubyOccurrenceIndex,
    emphasized_ranges: Sequence[tuple[int, int]] = (),
) -> list[str]:
    """
    Re-insert emphasis and ruby markup into plain clauses.

    ``html`` mode produces display markup (``<em>`` and ``<ruby>``); ``ssml``
    mode produces speech markup (prosody boost) and replaces ruby base texts by
    their readings. Each call counts consumed occurrences on its own counter
    and checks the totals against ``ruby.occurrences``.
    """
    if mode == "html":
        start_tag, end_tag = HTML_EMPHASIS_START, HTML_EMPHASIS_END
    elif mode == "ssml":
        start_tag, end_tag = SSML_EMPHASIS_START, SSML_EMPHASIS_END
    else:
        raise ValueError(f"Unknown reconstruction mode: {mode}")

    consumed: Counter[str] = Counter({base: 0 for base in ruby.base_texts})
    processed: list[str] = []
    offset = 0
    for clause in clauses:
        local_ranges = _clause_ranges(emphasized_ranges, offset, len(clause))
        result = _apply_emphasis(clause, local_ranges, start_tag, end_tag)

        for base in ruby.base_texts:

            def _replace(match: re.Match[str], base: str = base) -> str:
                index = consumed[base]
                consumed[base] += 1
                reading = ruby.reading_for(base, index)
                if reading is None:
                    return match.group(0)
                if mode == "html":
                    return _html_ruby(match.group(0), reading)
                return reading

            result = re.sub(re.escape(base), _replace, result)

        if mode == "ssml":
            result = KANA_SUBSTITUTIONS.get(result, result)

        processed.append(result)
        offset += len(clause)

    actual = dict(consumed)
    expected = dict(ruby.occurrences)
    if actual != expected:
        raise RubyOccurrenceMismatchError(mode, expected, actual)
    return processed


def to_html_clauses(
    clauses: Sequence[str],
    ruby: RubyOccurrenceIndex,
    emphasized_ranges: Sequence[tuple[int, int]] = (),
) -> list[str]:
    return reconstruct_clauses(clauses, "html", ruby, emphasized_ranges)


def to_ssml_clauses(
    clauses: Sequence[str],
    ruby: RubyOccurrenceIndex,
    emphasized_ranges: Sequence[tuple[int, int]] = (),
) -> list[str]:
    return reconstruct_clauses(clauses, "ssml", ruby, emphasized_ranges)
