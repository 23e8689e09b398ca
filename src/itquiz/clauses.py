from __future__ import annotations

from typing import Iterable, Protocol, Sequence

from .nlp import MorphToken

__all__ = [
    "SegmentationOffsetError",
    "Tokenizer",
    "locate_ruby_spans",
    "segment_text",
    "split_clauses",
    "is_function_token",
]

IDEOGRAPHIC_COMMA = "、"
# UniDic splits pronouns out of 名詞 into their own 代名詞 tag.
NOUN_POS = frozenset({"名詞", "代名詞"})
# IPADIC writes punctuation as 記号, UniDic as 補助記号.
SYMBOL_POS = frozenset({"記号", "補助記号"})
FUNCTION_POS = frozenset({"助詞", "助動詞", "接尾辞"})
# IPADIC marks dependent words as 非自立, UniDic as 非自立可能.
FUNCTION_DETAILS = frozenset({"接尾", "非自立", "非自立可能"})


class SegmentationOffsetError(RuntimeError):
    """Raised when tokens do not cover the plain text exactly."""


class Tokenizer(Protocol):
    def tokenize(self, text: str) -> Sequence[MorphToken]:
        ...


def is_function_token(token: MorphToken) -> bool:
    return token.pos in FUNCTION_POS or token.pos_detail_1 in FUNCTION_DETAILS


def locate_ruby_spans(text: str, base_texts: Iterable[str]) -> list[tuple[int, int]]:
    """Return every non-overlapping ``[start, end)`` occurrence of each base text."""
    spans: list[tuple[int, int]] = []
    for base in base_texts:
        if not base:
            continue
        start = text.find(base)
        while start != -1:
            spans.append((start, start + len(base)))
            start = text.find(base, start + len(base))
    return spans


def _starts_new_clause(
    token: MorphToken,
    previous: MorphToken | None,
    has_clauses: bool,
) -> bool:
    if not has_clauses or previous is None:
        return True
    if token.pos in SYMBOL_POS or previous.pos in SYMBOL_POS:
        return True
    if token.surface == IDEOGRAPHIC_COMMA or previous.surface == IDEOGRAPHIC_COMMA:
        return True
    if previous.pos in NOUN_POS and token.pos in NOUN_POS:
        return False
    if is_function_token(token):
        return False
    return True


def split_clauses(
    text: str,
    tokens: Sequence[MorphToken],
    ruby_spans: Sequence[tuple[int, int]] = (),
) -> list[str]:
    """
    Group morphological tokens into display/timing clauses.

    Nouns compound with a preceding noun, particles, auxiliaries and suffixes
    attach to the running clause, and symbols or the ideographic comma always
    stand alone. A token starting strictly inside a ruby span never opens a
    clause, so ruby base texts stay whole.
    """
    clauses: list[str] = []
    offset = 0
    previous: MorphToken | None = None
    for token in tokens:
        inside_ruby = any(start < offset < end for start, end in ruby_spans)
        if clauses and inside_ruby:
            clauses[-1] += token.surface
        elif _starts_new_clause(token, previous, bool(clauses)):
            clauses.append(token.surface)
        else:
            clauses[-1] += token.surface
        offset += len(token.surface)
        previous = token

    if offset != len(text):
        raise SegmentationOffsetError(
            f"Token offset {offset} does not match text length {len(text)}"
        )
    return clauses


def segment_text(
    text: str,
    tokenizer: Tokenizer,
    base_texts: Iterable[str] = (),
) -> list[str]:
    if not text:
        return []
    tokens = tokenizer.tokenize(text)
    return split_clauses(text, tokens, locate_ruby_spans(text, base_texts))
