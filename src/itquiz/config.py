from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Mapping

__all__ = [
    "DEFAULT_GOOGLE_VOICE",
    "DEFAULT_SPEAKING_RATE",
    "DEFAULT_VOICEVOX_SPEAKER",
    "DEFAULT_VOICEVOX_URL",
    "SynthesisConfig",
]

DEFAULT_BACKEND = "google"
DEFAULT_GOOGLE_VOICE = "ja-JP-Neural2-B"
DEFAULT_LANGUAGE_CODE = "ja-JP"
DEFAULT_SPEAKING_RATE = 1.4
DEFAULT_VOICEVOX_URL = "http://127.0.0.1:50021"
DEFAULT_VOICEVOX_SPEAKER = "春日部つむぎ"
DEFAULT_VOICEVOX_STYLE = "ノーマル"
DEFAULT_SPEECH_DIR = Path("public") / "speeches"

_ENV_PREFIX = "ITQUIZ_"


@dataclass(frozen=True)
class SynthesisConfig:
    backend: str = DEFAULT_BACKEND
    google_voice: str = DEFAULT_GOOGLE_VOICE
    language_code: str = DEFAULT_LANGUAGE_CODE
    speaking_rate: float = DEFAULT_SPEAKING_RATE
    voicevox_url: str = DEFAULT_VOICEVOX_URL
    voicevox_speaker: str = DEFAULT_VOICEVOX_SPEAKER
    voicevox_style: str = DEFAULT_VOICEVOX_STYLE
    voicevox_speed: float = 1.21
    voicevox_pitch: float = 0.0
    voicevox_intonation: float = 1.05
    voicevox_volume: float = 0.9
    speech_dir: Path = DEFAULT_SPEECH_DIR
    timeout: float = 30.0

    @property
    def voice(self) -> str:
        if self.backend == "voicevox":
            return self.voicevox_speaker
        return self.google_voice

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SynthesisConfig":
        """
        Build a config from ``ITQUIZ_<FIELD>`` environment variables.

        For example ``ITQUIZ_BACKEND=voicevox`` or ``ITQUIZ_SPEAKING_RATE=1.2``.
        """
        env = os.environ if environ is None else environ
        config = cls()
        overrides: dict[str, object] = {}
        for spec in fields(cls):
            key = f"{_ENV_PREFIX}{spec.name.upper()}"
            raw = env.get(key)
            if raw is None or not raw.strip():
                continue
            default = getattr(config, spec.name)
            overrides[spec.name] = _coerce(key, raw.strip(), default)
        return replace(config, **overrides)

    def with_overrides(self, **overrides: object) -> "SynthesisConfig":
        present = {key: value for key, value in overrides.items() if value is not None}
        if "speech_dir" in present:
            present["speech_dir"] = Path(str(present["speech_dir"])).expanduser()
        return replace(self, **present)


def _coerce(key: str, raw: str, default: object) -> object:
    if isinstance(default, float):
        try:
            return float(raw)
        except ValueError as exc:
            raise ValueError(f"{key} must be a number, got {raw!r}") from exc
    if isinstance(default, Path):
        return Path(raw).expanduser()
    return raw
