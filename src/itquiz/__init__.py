from .clauses import SegmentationOffsetError, segment_text, split_clauses
from .markup import MalformedMarkupError, MarkupExtraction, RubyOccurrenceIndex, extract_markup
from .nlp import MorphToken, NLPBackend, NLPBackendUnavailableError
from .reconstruct import RubyOccurrenceMismatchError, to_html_clauses, to_ssml_clauses
from .ssml import build_marked_ssml, group_components
from .synthesis import QuizScript, QuizSpeech, format_quiz, synthesize_quiz, synthesize_quiz_to_file
from .timeline import (
    InvalidTimepointError,
    RevealEntry,
    Timepoint,
    build_reveal_entries,
    quiz_duration,
    reveal_schedule,
)
from .tts import (
    ExternalServiceError,
    GoogleSpeechSynthesizer,
    SpeechSynthesizer,
    SynthesisResult,
    VoiceVoxSynthesizer,
    create_synthesizer,
)

__all__ = [
    "extract_markup",
    "MarkupExtraction",
    "RubyOccurrenceIndex",
    "MalformedMarkupError",
    "MorphToken",
    "NLPBackend",
    "NLPBackendUnavailableError",
    "segment_text",
    "split_clauses",
    "SegmentationOffsetError",
    "to_html_clauses",
    "to_ssml_clauses",
    "RubyOccurrenceMismatchError",
    "build_marked_ssml",
    "group_components",
    "InvalidTimepointError",
    "Timepoint",
    "RevealEntry",
    "build_reveal_entries",
    "reveal_schedule",
    "quiz_duration",
    "QuizScript",
    "QuizSpeech",
    "format_quiz",
    "synthesize_quiz",
    "synthesize_quiz_to_file",
    "SpeechSynthesizer",
    "SynthesisResult",
    "GoogleSpeechSynthesizer",
    "VoiceVoxSynthesizer",
    "ExternalServiceError",
    "create_synthesizer",
]
