from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from .logging_utils import debug_log as _debug_log

__all__ = [
    "ClauseWindow",
    "InvalidTimepointError",
    "RevealEntry",
    "Timepoint",
    "build_reveal_entries",
    "extract_mark_index",
    "quiz_duration",
    "reveal_schedule",
]

QUIZ_PADDING_SECONDS = 6.1
_MARK_INDEX_RE = re.compile(r"c(\d+)")
_TAG_RE = re.compile(r"<[^>]*>")
_RUBY_ANNOTATION_RE = re.compile(r"<(rt|rp)>.*?</\1>")


class InvalidTimepointError(ValueError):
    """Raised when an engine timepoint carries a time that is not a number."""


@dataclass(frozen=True)
class Timepoint:
    mark_name: str
    time_seconds: float

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> "Timepoint":
        name = payload.get("markName", payload.get("mark_name"))
        seconds = payload.get("timeSeconds", payload.get("time_seconds"))
        if seconds is None:
            seconds = 0.0
        try:
            time_seconds = float(seconds)
        except (TypeError, ValueError) as exc:
            raise InvalidTimepointError(
                f"Timepoint {name!r} has a non-numeric time: {seconds!r}"
            ) from exc
        return cls(mark_name=str(name) if name is not None else "", time_seconds=time_seconds)

    def to_dict(self) -> dict[str, object]:
        return {"markName": self.mark_name, "timeSeconds": self.time_seconds}


def _ratio(timestamp: float, start: float, end: float) -> float:
    if timestamp > end:
        return 0.0
    if timestamp < start:
        return 1.0
    duration = end - start
    if duration <= 0:
        return 0.0
    return 1.0 - (timestamp - start) / duration


@dataclass(frozen=True)
class ClauseWindow:
    index: int
    html: str
    start: float
    end: float

    def hidden_ratio(self, timestamp: float) -> float:
        return _ratio(timestamp, self.start, self.end)


@dataclass(frozen=True)
class RevealEntry:
    """One revealed unit: the clauses closed by a single timepoint."""

    html: str
    start: float
    end: float
    clause_indices: tuple[int, ...]
    windows: tuple[ClauseWindow, ...]

    @property
    def duration(self) -> float:
        return self.end - self.start

    def hidden_ratio(self, timestamp: float) -> float:
        return _ratio(timestamp, self.start, self.end)


def extract_mark_index(mark_name: str | None) -> int | None:
    if not mark_name:
        return None
    match = _MARK_INDEX_RE.search(mark_name)
    if match is None:
        return None
    return int(match.group(1))


def _visible_length(html: str) -> int:
    return len(_TAG_RE.sub("", _RUBY_ANNOTATION_RE.sub("", html)))


def _split_window(
    clauses: Sequence[str],
    first_index: int,
    start: float,
    end: float,
) -> tuple[ClauseWindow, ...]:
    lengths = [_visible_length(clause) for clause in clauses]
    total = sum(lengths)
    windows: list[ClauseWindow] = []
    cursor = start
    for position, (clause, length) in enumerate(zip(clauses, lengths)):
        if total > 0:
            share = (end - start) * length / total
        else:
            share = (end - start) / len(clauses)
        window_end = end if position == len(clauses) - 1 else cursor + share
        windows.append(ClauseWindow(first_index + position, clause, cursor, window_end))
        cursor = window_end
    return tuple(windows)


def build_reveal_entries(
    clauses: Sequence[str],
    timepoints: Iterable[Timepoint],
) -> list[RevealEntry]:
    """
    Map TTS timepoints back onto clauses.

    Timepoints are ordered by the index in their mark name, not by arrival.
    A timepoint ``cN`` closes every clause after the previous mark up to and
    including clause N; its window starts at the previous timepoint.
    """
    indexed: list[tuple[int, Timepoint]] = []
    for timepoint in timepoints:
        index = extract_mark_index(timepoint.mark_name)
        if index is None:
            _debug_log(f"skipping timepoint without mark index: {timepoint.mark_name!r}")
            continue
        indexed.append((index, timepoint))
    indexed.sort(key=lambda item: item[0])

    entries: list[RevealEntry] = []
    previous_index = -1
    offset = 0.0
    for index, timepoint in indexed:
        group = list(clauses[previous_index + 1 : index + 1])
        seconds = timepoint.time_seconds
        if group:
            html = "".join(group).replace(" ", "\xa0")
            windows = _split_window(
                [clause.replace(" ", "\xa0") for clause in group],
                previous_index + 1,
                offset,
                seconds,
            )
            entries.append(
                RevealEntry(
                    html=html,
                    start=offset,
                    end=seconds,
                    clause_indices=tuple(window.index for window in windows),
                    windows=windows,
                )
            )
        else:
            _debug_log(f"timepoint {timepoint.mark_name} closes no clauses")
        offset = seconds
        previous_index = index
    return entries


def reveal_schedule(
    clauses: Sequence[str],
    timepoints: Iterable[Timepoint],
    timestamp: float,
) -> list[dict[str, object]]:
    """Return ``{html, duration, hiddenRatio}`` per entry at playback ``timestamp``."""
    return [
        {
            "html": entry.html,
            "duration": entry.duration,
            "hiddenRatio": entry.hidden_ratio(timestamp),
        }
        for entry in build_reveal_entries(clauses, timepoints)
    ]


def quiz_duration(timepoints: Iterable[Timepoint], padding: float = QUIZ_PADDING_SECONDS) -> float:
    latest = 0.0
    for timepoint in timepoints:
        latest = max(latest, timepoint.time_seconds)
    return latest + padding
