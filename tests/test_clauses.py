from __future__ import annotations

import pytest

from itquiz.clauses import (
    SegmentationOffsetError,
    locate_ruby_spans,
    segment_text,
    split_clauses,
)
from itquiz.nlp import MorphToken


def _tokens(*items: tuple[str, str | None, str | None]) -> list[MorphToken]:
    return [MorphToken(surface, pos, detail) for surface, pos, detail in items]


QUESTION_TOKENS = _tokens(
    ("これ", "名詞", "代名詞"),
    ("は", "助詞", "係助詞"),
    ("何", "名詞", "代名詞"),
    ("です", "助動詞", None),
    ("か", "助詞", "副助詞／並立助詞／終助詞"),
    ("？", "記号", "一般"),
)


class _TableTokenizer:
    def __init__(self, table: dict[str, list[MorphToken]]) -> None:
        self.table = table
        self.calls: list[str] = []

    def tokenize(self, text: str) -> list[MorphToken]:
        self.calls.append(text)
        return self.table[text]


def test_particles_and_auxiliaries_attach_to_previous_clause() -> None:
    clauses = split_clauses("これは何ですか？", QUESTION_TOKENS)

    assert clauses == ["これは", "何ですか", "？"]


def test_consecutive_nouns_compound() -> None:
    tokens = _tokens(
        ("東京", "名詞", "固有名詞"),
        ("タワー", "名詞", "一般"),
        ("に", "助詞", "格助詞"),
        ("行く", "動詞", "自立"),
    )

    assert split_clauses("東京タワーに行く", tokens) == ["東京タワーに", "行く"]


def test_ideographic_comma_stands_alone_even_without_symbol_tag() -> None:
    tokens = _tokens(
        ("はい", "感動詞", None),
        ("、", None, None),
        ("です", "助動詞", None),
    )

    assert split_clauses("はい、です", tokens) == ["はい", "、", "です"]


def test_unidic_supplementary_symbols_split() -> None:
    tokens = _tokens(
        ("本", "名詞", "普通名詞"),
        ("。", "補助記号", "句点"),
        ("本", "名詞", "普通名詞"),
    )

    assert split_clauses("本。本", tokens) == ["本", "。", "本"]


def test_non_independent_and_suffix_tokens_attach() -> None:
    tokens = _tokens(
        ("見", "動詞", "自立"),
        ("て", "助詞", "接続助詞"),
        ("いる", "動詞", "非自立"),
        ("田中", "名詞", "固有名詞"),
        ("さん", "接尾辞", "名詞的"),
    )

    assert split_clauses("見ている田中さん", tokens) == ["見ている", "田中さん"]


def test_unidic_dependent_words_and_pronouns() -> None:
    tokens = _tokens(
        ("使わ", "動詞", "一般"),
        ("れ", "助動詞", None),
        ("て", "助詞", "接続助詞"),
        ("いる", "動詞", "非自立可能"),
        ("彼", "代名詞", None),
        ("自身", "名詞", "普通名詞"),
    )

    assert split_clauses("使われている彼自身", tokens) == ["使われている", "彼自身"]


def test_ruby_span_is_never_split() -> None:
    tokens = _tokens(
        ("見", "動詞", "自立"),
        ("上げる", "動詞", "自立"),
    )

    assert split_clauses("見上げる", tokens) == ["見", "上げる"]
    assert split_clauses("見上げる", tokens, [(0, 2)]) == ["見上げる"]


def test_offset_mismatch_is_fatal() -> None:
    tokens = _tokens(("これ", "名詞", None))

    with pytest.raises(SegmentationOffsetError):
        split_clauses("これは", tokens)


def test_locate_ruby_spans_finds_every_occurrence() -> None:
    spans = locate_ruby_spans("日曜日の今日", ["今日", "日"])

    assert spans == [(4, 6), (0, 1), (2, 3), (5, 6)]


def test_segment_text_uses_tokenizer_and_ruby_spans() -> None:
    tokenizer = _TableTokenizer(
        {"見上げる": _tokens(("見", "動詞", "自立"), ("上げる", "動詞", "自立"))}
    )

    assert segment_text("見上げる", tokenizer, ["見上"]) == ["見上げる"]
    assert tokenizer.calls == ["見上げる"]


def test_segment_text_empty_input_skips_tokenizer() -> None:
    tokenizer = _TableTokenizer({})

    assert segment_text("", tokenizer) == []
    assert tokenizer.calls == []


@pytest.mark.parametrize(
    "text",
    [
        "これは何ですか？",
        "2つの目玉がマウスポインタの動きを追いかける、X Window Systemのデモ。",
        "「1 &lt; 2」は真です。",
    ],
)
def test_clauses_concatenate_to_input(text: str) -> None:
    # One token per character with a rotating set of tags.
    tags = [("名詞", None), ("助詞", None), ("動詞", "自立"), ("記号", "一般"), ("助動詞", None)]
    tokens = [
        MorphToken(ch, *tags[idx % len(tags)])
        for idx, ch in enumerate(text)
    ]

    clauses = split_clauses(text, tokens)

    assert clauses
    assert "".join(clauses) == text


def test_real_tokenizer_covers_whitespace() -> None:
    pytest.importorskip("fugashi")
    from itquiz.nlp import NLPBackend, NLPBackendUnavailableError

    try:
        backend = NLPBackend()
    except NLPBackendUnavailableError as exc:
        pytest.skip(str(exc))
    text = "X Window Systemのデモアプリケーションは何でしょう？"
    tokens = backend.tokenize(text)

    assert "".join(token.surface for token in tokens) == text
    clauses = segment_text(text, backend)
    assert "".join(clauses) == text
    assert clauses[-1] == "？"


def _real_backend():
    pytest.importorskip("fugashi")
    from itquiz.nlp import NLPBackend, NLPBackendUnavailableError

    try:
        return NLPBackend()
    except NLPBackendUnavailableError as exc:
        pytest.skip(str(exc))


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("使われている", ["使われている"]),
        ("ことができる", ["ことができる"]),
        ("学生たちが", ["学生たちが"]),
        ("これは何ですか？", ["これは", "何ですか", "？"]),
    ],
)
def test_real_tokenizer_clause_boundaries(text: str, expected: list[str]) -> None:
    backend = _real_backend()

    assert segment_text(text, backend) == expected
