from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Sequence

from .clauses import Tokenizer, segment_text
from .config import SynthesisConfig
from .logging_utils import debug_log as _debug_log
from .markup import extract_markup
from .reconstruct import to_html_clauses, to_ssml_clauses
from .ssml import build_marked_ssml
from .timeline import Timepoint
from .tts import ExternalServiceError, SpeechSynthesizer

__all__ = [
    "QuizScript",
    "QuizSpeech",
    "SpeechFile",
    "format_quiz",
    "synthesize_quiz",
    "synthesize_quiz_to_file",
    "synthesize_quizzes",
]


@dataclass(frozen=True)
class QuizScript:
    plain_clauses: tuple[str, ...]
    clauses: tuple[str, ...]
    ssml_clauses: tuple[str, ...]
    components: tuple[tuple[str, ...], ...]
    ssml: str


@dataclass
class QuizSpeech:
    audio: bytes
    clauses: list[str]
    timepoints: list[Timepoint]
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class SpeechFile:
    audio_file_path: Path
    clauses: list[str]
    timepoints: list[Timepoint]

    def to_dict(self) -> dict[str, object]:
        return {
            "audioFilePath": str(self.audio_file_path),
            "clauses": list(self.clauses),
            "timepoints": [timepoint.to_dict() for timepoint in self.timepoints],
        }


def format_quiz(text: str, tokenizer: Tokenizer) -> QuizScript:
    """
    Turn quiz markup into display clauses and marked SSML.

    ``text`` may carry ``<ruby>`` annotations and ``<em>`` spans. The display
    clauses keep that markup; the SSML speaks ruby readings, boosts emphasized
    text and places ``<mark name="cN"/>`` after clause N.
    """
    extraction = extract_markup(text)
    plain_clauses = segment_text(
        extraction.plain_text,
        tokenizer,
        extraction.ruby.base_texts,
    )
    _debug_log(f"clauses: {plain_clauses}")
    html_clauses = to_html_clauses(plain_clauses, extraction.ruby, extraction.emphasized_ranges)
    ssml_clauses = to_ssml_clauses(plain_clauses, extraction.ruby, extraction.emphasized_ranges)
    marked = build_marked_ssml(ssml_clauses)
    return QuizScript(
        plain_clauses=tuple(plain_clauses),
        clauses=tuple(html_clauses),
        ssml_clauses=tuple(ssml_clauses),
        components=marked.components,
        ssml=marked.ssml,
    )


def synthesize_quiz(
    text: str,
    synthesizer: SpeechSynthesizer,
    voice: str,
    tokenizer: Tokenizer,
) -> QuizSpeech:
    script = format_quiz(text, tokenizer)
    if not synthesizer.accepts_ssml:
        result = synthesizer.synthesize(text, voice)
        return QuizSpeech(
            audio=result.audio,
            clauses=list(script.clauses),
            timepoints=list(result.timepoints),
            extra=dict(result.extra),
        )

    result = synthesizer.synthesize(script.ssml, voice)
    if not result.timepoints:
        raise ExternalServiceError("Speech engine returned no timepoints for marked SSML")
    return QuizSpeech(
        audio=result.audio,
        clauses=list(script.clauses),
        timepoints=list(result.timepoints),
        extra=dict(result.extra),
    )


def synthesize_quiz_to_file(
    text: str,
    filename: str,
    synthesizer: SpeechSynthesizer,
    tokenizer: Tokenizer,
    config: SynthesisConfig | None = None,
    *,
    voice: str | None = None,
) -> SpeechFile:
    config = config or SynthesisConfig()
    speech = synthesize_quiz(text, synthesizer, voice or config.voice, tokenizer)
    output_dir = Path(config.speech_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / filename
    if not output_path.suffix:
        output_path = output_path.with_suffix(synthesizer.audio_extension)
    output_path.write_bytes(speech.audio)
    _debug_log(f"wrote {len(speech.audio)} bytes to {output_path}")
    return SpeechFile(
        audio_file_path=output_path,
        clauses=speech.clauses,
        timepoints=speech.timepoints,
    )


def _close_synthesizer(synthesizer: SpeechSynthesizer) -> None:
    close = getattr(synthesizer, "close", None)
    if callable(close):
        close()


def synthesize_quizzes(
    items: Sequence[tuple[str, str]],
    synthesizer_factory: Callable[[], SpeechSynthesizer],
    tokenizer: Tokenizer,
    config: SynthesisConfig | None = None,
    *,
    jobs: int = 1,
) -> list[SpeechFile]:
    """
    Synthesize ``(text, filename)`` pairs, optionally in parallel.

    ``synthesizer_factory`` is called once for a sequential run and once per
    item when running in parallel, so HTTP sessions are never shared between
    worker threads. The tokenizer is shared; ``NLPBackend`` serializes access
    to its tagger. The first failure is re-raised once every submitted item
    has finished.
    """
    if not items:
        return []
    workers = max(1, min(jobs, len(items)))
    if workers == 1:
        synthesizer = synthesizer_factory()
        try:
            return [
                synthesize_quiz_to_file(text, filename, synthesizer, tokenizer, config)
                for text, filename in items
            ]
        finally:
            _close_synthesizer(synthesizer)

    def _worker(item: tuple[str, str]) -> SpeechFile:
        text, filename = item
        synthesizer = synthesizer_factory()
        try:
            return synthesize_quiz_to_file(text, filename, synthesizer, tokenizer, config)
        finally:
            _close_synthesizer(synthesizer)

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_worker, item) for item in items]
    return [future.result() for future in futures]
