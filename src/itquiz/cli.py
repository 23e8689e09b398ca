from __future__ import annotations

import argparse
import json
import sys
from importlib import metadata
from pathlib import Path

from rich.table import Table
from rich.text import Text

from .clauses import SegmentationOffsetError
from .config import SynthesisConfig
from .logging_utils import console, set_debug_logging
from .markup import MalformedMarkupError
from .nlp import NLPBackend, NLPBackendUnavailableError
from .reconstruct import RubyOccurrenceMismatchError
from .synthesis import format_quiz, synthesize_quiz_to_file
from .timeline import InvalidTimepointError, Timepoint, build_reveal_entries, quiz_duration
from .tools import UNIDIC_DIR_ENV, resolve_unidic_status
from .tts import ExternalServiceError, create_synthesizer

try:
    __version__ = metadata.version("itquiz")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0"

_PIPELINE_ERRORS = (
    MalformedMarkupError,
    RubyOccurrenceMismatchError,
    SegmentationOffsetError,
    ExternalServiceError,
)


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"itquiz {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Print pipeline debug output to stderr.",
    )


def _add_text_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "text",
        nargs="+",
        help="Quiz text with optional <ruby> and <em> markup. Quote it if it contains spaces.",
    )


def build_clauses_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="itquiz clauses",
        description="Split quiz text into display and speech clauses.",
    )
    _add_common_flags(ap)
    _add_text_argument(ap)
    ap.add_argument("--json", action="store_true", help="Emit JSON instead of a table.")
    return ap


def build_ssml_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="itquiz ssml",
        description="Print the marked SSML document sent to the speech engine.",
    )
    _add_common_flags(ap)
    _add_text_argument(ap)
    return ap


def build_synth_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="itquiz synth",
        description="Synthesize quiz text to an audio file and print clauses and timepoints.",
    )
    _add_common_flags(ap)
    _add_text_argument(ap)
    ap.add_argument("-o", "--output", required=True, help="Audio file name inside the speech directory.")
    ap.add_argument(
        "--backend",
        choices=["google", "voicevox"],
        help="Speech backend (default: ITQUIZ_BACKEND or google).",
    )
    ap.add_argument("--voice", help="Google voice name or VoiceVox speaker name.")
    ap.add_argument("--speech-dir", help="Directory for synthesized audio (default: public/speeches).")
    ap.add_argument("--speaking-rate", type=float, help="Google speaking rate.")
    ap.add_argument("--engine-url", help="VoiceVox engine URL.")
    return ap


def build_schedule_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="itquiz schedule",
        description="Show the clause reveal schedule for a synthesized quiz.",
    )
    _add_common_flags(ap)
    ap.add_argument("speech_json", help="JSON file written by `itquiz synth` (clauses + timepoints).")
    ap.add_argument("--at", type=float, default=0.0, help="Playback time in seconds.")
    return ap


def build_tools_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="itquiz tools", description="itquiz helper utilities")
    _add_common_flags(ap)
    subparsers = ap.add_subparsers(dest="tool_cmd")
    subparsers.add_parser("unidic-status", help="Show which MeCab dictionary is used.")
    return ap


def _load_backend() -> NLPBackend:
    try:
        return NLPBackend()
    except NLPBackendUnavailableError as exc:
        raise SystemExit(str(exc)) from exc


def _joined_text(args: argparse.Namespace) -> str:
    text = " ".join(args.text).strip()
    if not text:
        raise SystemExit("No quiz text provided.")
    return text


def _run_clauses(args: argparse.Namespace) -> int:
    text = _joined_text(args)
    try:
        script = format_quiz(text, _load_backend())
    except _PIPELINE_ERRORS as exc:
        raise SystemExit(str(exc)) from exc
    if args.json:
        payload = {"clauses": list(script.clauses), "ssmlClauses": list(script.ssml_clauses)}
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0
    table = Table(title="Clauses")
    table.add_column("#", justify="right")
    table.add_column("display")
    table.add_column("speech")
    for index, (html, ssml) in enumerate(zip(script.clauses, script.ssml_clauses)):
        table.add_row(str(index), Text(html), Text(ssml))
    console.print(table)
    return 0


def _run_ssml(args: argparse.Namespace) -> int:
    text = _joined_text(args)
    try:
        script = format_quiz(text, _load_backend())
    except _PIPELINE_ERRORS as exc:
        raise SystemExit(str(exc)) from exc
    print(script.ssml)
    return 0


def _run_synth(args: argparse.Namespace) -> int:
    text = _joined_text(args)
    try:
        config = SynthesisConfig.from_env()
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    config = config.with_overrides(
        backend=args.backend,
        speech_dir=args.speech_dir,
        speaking_rate=args.speaking_rate,
        voicevox_url=args.engine_url,
    )
    try:
        synthesizer = create_synthesizer(config)
        result = synthesize_quiz_to_file(
            text,
            args.output,
            synthesizer,
            _load_backend(),
            config,
            voice=args.voice,
        )
    except (ValueError, *_PIPELINE_ERRORS) as exc:
        raise SystemExit(str(exc)) from exc
    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    return 0


def _run_schedule(args: argparse.Namespace) -> int:
    path = Path(args.speech_json).expanduser()
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise SystemExit(f"File not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid JSON in {path}: {exc}") from exc
    clauses = [str(clause) for clause in payload.get("clauses", [])]
    try:
        timepoints = [Timepoint.from_mapping(entry) for entry in payload.get("timepoints", [])]
    except InvalidTimepointError as exc:
        raise SystemExit(f"Invalid timepoint in {path}: {exc}") from exc
    entries = build_reveal_entries(clauses, timepoints)

    table = Table(title=f"Reveal schedule at {args.at:.2f}s")
    table.add_column("clauses", justify="right")
    table.add_column("html")
    table.add_column("start", justify="right")
    table.add_column("duration", justify="right")
    table.add_column("hidden", justify="right")
    for entry in entries:
        indices = ",".join(str(index) for index in entry.clause_indices)
        table.add_row(
            indices,
            Text(entry.html),
            f"{entry.start:.2f}",
            f"{entry.duration:.2f}",
            f"{entry.hidden_ratio(args.at):.2f}",
        )
    console.print(table)
    console.print(f"Quiz duration: {quiz_duration(timepoints):.2f}s")
    return 0


def _run_tools(args: argparse.Namespace) -> int:
    if args.tool_cmd == "unidic-status":
        status = resolve_unidic_status()
        if status.path is not None:
            print(f"UniDic path: {status.path} (from {status.source})")
        else:
            print("No UniDic dictionary detected; MeCab will use its default dictionary.")
        print(f"Set {UNIDIC_DIR_ENV} to override.")
        return 0
    raise SystemExit("A tools subcommand is required. Use --help for options.")


_COMMANDS = {
    "clauses": (build_clauses_parser, _run_clauses),
    "ssml": (build_ssml_parser, _run_ssml),
    "synth": (build_synth_parser, _run_synth),
    "schedule": (build_schedule_parser, _run_schedule),
    "tools": (build_tools_parser, _run_tools),
}


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    if not argv or argv[0] not in _COMMANDS:
        if argv and argv[0] in {"-v", "--version"}:
            print(f"itquiz {__version__}")
            return 0
        commands = ", ".join(_COMMANDS)
        raise SystemExit(f"Usage: itquiz <command> [...]. Commands: {commands}")

    build_parser, runner = _COMMANDS[argv[0]]
    args = build_parser().parse_args(argv[1:])
    set_debug_logging(args.debug)
    return runner(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
