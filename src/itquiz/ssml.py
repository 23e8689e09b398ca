from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

__all__ = [
    "COMPONENT_END_CHARS",
    "MarkedSpeech",
    "build_marked_ssml",
    "group_components",
    "mark_name",
]

COMPONENT_END_CHARS = frozenset("、。?？")
MARK_PREFIX = "c"


@dataclass(frozen=True)
class MarkedSpeech:
    components: tuple[tuple[str, ...], ...]
    ssml: str


def mark_name(index: int) -> str:
    return f"{MARK_PREFIX}{index}"


def group_components(clauses: Sequence[str]) -> list[list[str]]:
    """Group clauses into spoken components ending at terminal punctuation."""
    components: list[list[str]] = []
    previous_ended = False
    for clause in clauses:
        if not components or previous_ended:
            components.append([clause])
        else:
            components[-1].append(clause)
        previous_ended = bool(clause) and clause[-1] in COMPONENT_END_CHARS
    return components


def build_marked_ssml(clauses: Sequence[str]) -> MarkedSpeech:
    """
    Insert a ``<mark>`` after every clause and wrap the result in ``<speak>``.

    Marks are numbered densely across the whole document, so mark ``cN``
    closes the Nth clause regardless of how clauses were grouped.
    """
    components = group_components(clauses)
    pieces: list[str] = []
    index = 0
    for component in components:
        for clause in component:
            pieces.append(f'{clause}<mark name="{mark_name(index)}"/>')
            index += 1
    return MarkedSpeech(
        components=tuple(tuple(component) for component in components),
        ssml=f"<speak>{''.join(pieces)}</speak>",
    )
