from __future__ import annotations

import pytest

from itquiz.markup import RubyOccurrenceIndex, extract_markup
from itquiz.reconstruct import (
    SSML_EMPHASIS_END,
    SSML_EMPHASIS_START,
    RubyOccurrenceMismatchError,
    to_html_clauses,
    to_ssml_clauses,
)


def _ruby(base: str, reading: str) -> str:
    return f"<ruby><rb>{base}</rb><rp>（</rp><rt>{reading}</rt><rp>）</rp></ruby>"


def _boost(text: str) -> str:
    return f"{SSML_EMPHASIS_START}{text}{SSML_EMPHASIS_END}"


def test_ruby_is_wrapped_for_display_and_read_for_speech() -> None:
    extraction = extract_markup(f"これは{_ruby('何', 'なん')}ですか？")
    clauses = ["これは", "何", "ですか？"]

    html = to_html_clauses(clauses, extraction.ruby, extraction.emphasized_ranges)
    ssml = to_ssml_clauses(clauses, extraction.ruby, extraction.emphasized_ranges)

    assert html == ["これは", _ruby("何", "なん"), "ですか？"]
    assert ssml == ["これは", "なん", "ですか？"]


def test_emphasis_covering_whole_clause() -> None:
    extraction = extract_markup("<em>私は</em>春日部つむぎです。")
    clauses = ["私は", "春日部つむぎです", "。"]

    html = to_html_clauses(clauses, extraction.ruby, extraction.emphasized_ranges)
    ssml = to_ssml_clauses(clauses, extraction.ruby, extraction.emphasized_ranges)

    assert html == ["<em>私は</em>", "春日部つむぎです", "。"]
    assert ssml == [_boost("私は"), "春日部つむぎです", "。"]


def test_emphasis_spanning_clauses_is_balanced_per_clause() -> None:
    extraction = extract_markup("<em>私は春日部</em>です")
    clauses = ["私は", "春日部です"]

    html = to_html_clauses(clauses, extraction.ruby, extraction.emphasized_ranges)
    ssml = to_ssml_clauses(clauses, extraction.ruby, extraction.emphasized_ranges)

    assert html == ["<em>私は</em>", "<em>春日部</em>です"]
    assert ssml == [_boost("私は"), f"{_boost('春日部')}です"]
    for clause in ssml:
        assert clause.count("<emphasis") == clause.count("</emphasis>")


def test_emphasized_ruby_keeps_both_markups() -> None:
    extraction = extract_markup(f"「1 &lt; 2」は<em>{_ruby('真', 'しん')}</em>です。")
    clauses = ["「1 &lt; 2」は", "真です", "。"]

    html = to_html_clauses(clauses, extraction.ruby, extraction.emphasized_ranges)
    ssml = to_ssml_clauses(clauses, extraction.ruby, extraction.emphasized_ranges)

    assert html[1] == f"<em>{_ruby('真', 'しん')}</em>です"
    assert ssml[1] == f"{_boost('しん')}です"
    assert html[0] == ssml[0] == "「1 &lt; 2」は"


def test_interrogatives_are_respelled_for_speech_only() -> None:
    ruby = RubyOccurrenceIndex()
    clauses = ["これは", "何でしょう", "？", "何と"]

    assert to_ssml_clauses(clauses, ruby) == ["これは", "なんでしょう", "？", "なんと"]
    assert to_html_clauses(clauses, ruby) == clauses


def test_plain_occurrence_without_reading_is_left_alone() -> None:
    extraction = extract_markup(f"何が{_ruby('何', 'なに')}か")
    clauses = ["何が", "何か"]

    assert to_ssml_clauses(clauses, extraction.ruby) == ["何が", "なにか"]
    assert to_html_clauses(clauses, extraction.ruby) == ["何が", f"{_ruby('何', 'なに')}か"]


def test_nested_base_text_mismatch_names_speech_mode() -> None:
    extraction = extract_markup(f"{_ruby('今日', 'きょう')}は{_ruby('日', 'ひ')}曜日")
    clauses = ["今日は", "日曜日"]

    html = to_html_clauses(clauses, extraction.ruby)
    assert html == [f"{_ruby('今日', 'きょう')}は", f"{_ruby('日', 'ひ')}曜日"]

    with pytest.raises(RubyOccurrenceMismatchError) as excinfo:
        to_ssml_clauses(clauses, extraction.ruby)
    assert excinfo.value.mode == "ssml"
    assert "ssml" in str(excinfo.value)
    assert excinfo.value.expected == {"今日": 1, "日": 3}
    assert excinfo.value.actual == {"今日": 1, "日": 2}


def test_missing_occurrence_names_display_mode() -> None:
    extraction = extract_markup(f"これは{_ruby('何', 'なん')}")

    with pytest.raises(RubyOccurrenceMismatchError) as excinfo:
        to_html_clauses(["これは"], extraction.ruby)
    assert excinfo.value.mode == "html"


def test_passes_do_not_share_counters() -> None:
    extraction = extract_markup(f"{_ruby('何', 'なん')}と{_ruby('何', 'なに')}")
    clauses = ["何と", "何"]

    first = to_ssml_clauses(clauses, extraction.ruby)
    second = to_ssml_clauses(clauses, extraction.ruby)

    assert first == second == ["なんと", "なに"]
    assert dict(extraction.ruby.occurrences) == {"何": 2}
