from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Protocol

import requests

from .config import SynthesisConfig
from .logging_utils import debug_log as _debug_log
from .markup import sanitize_display_text
from .timeline import Timepoint

__all__ = [
    "ExternalServiceError",
    "GoogleSpeechError",
    "GoogleSpeechSynthesizer",
    "SpeechSynthesizer",
    "SynthesisResult",
    "VoiceVoxError",
    "VoiceVoxSynthesizer",
    "VoiceVoxUnavailableError",
    "create_synthesizer",
]


class ExternalServiceError(RuntimeError):
    """Raised when a speech engine or another network collaborator fails."""


class GoogleSpeechError(ExternalServiceError):
    """Raised when Google Cloud Text-to-Speech rejects or fails a request."""


class VoiceVoxError(ExternalServiceError):
    """Raised when the VoiceVox engine returns an unexpected response."""


class VoiceVoxUnavailableError(VoiceVoxError):
    """Raised when the VoiceVox engine is unreachable."""


@dataclass
class SynthesisResult:
    audio: bytes
    timepoints: list[Timepoint] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)


class SpeechSynthesizer(Protocol):
    #: Whether ``synthesize`` expects SSML with marks (and returns timepoints).
    accepts_ssml: bool
    audio_extension: str

    def synthesize(self, text: str, voice: str) -> SynthesisResult:
        ...


class GoogleSpeechSynthesizer:
    """Google Cloud Text-to-Speech (v1beta1) with SSML mark time pointing."""

    accepts_ssml = True
    audio_extension = ".mp3"

    def __init__(
        self,
        *,
        language_code: str = "ja-JP",
        speaking_rate: float = 1.4,
        client: Any | None = None,
    ) -> None:
        try:
            from google.cloud import texttospeech_v1beta1 as texttospeech  # type: ignore
        except ImportError as exc:
            raise GoogleSpeechError(
                "Google synthesis requires 'google-cloud-texttospeech' to be installed."
            ) from exc
        self._texttospeech = texttospeech
        self.language_code = language_code
        self.speaking_rate = speaking_rate
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = self._texttospeech.TextToSpeechClient()
        return self._client

    def build_request(self, ssml: str, voice: str):
        tts = self._texttospeech
        return tts.SynthesizeSpeechRequest(
            input=tts.SynthesisInput(ssml=ssml),
            voice=tts.VoiceSelectionParams(language_code=self.language_code, name=voice),
            audio_config=tts.AudioConfig(
                audio_encoding=tts.AudioEncoding.MP3,
                speaking_rate=self.speaking_rate,
                effects_profile_id=["headphone-class-device"],
            ),
            enable_time_pointing=[tts.SynthesizeSpeechRequest.TimepointType.SSML_MARK],
        )

    def synthesize(self, text: str, voice: str) -> SynthesisResult:
        from google.api_core import exceptions as google_exceptions  # type: ignore

        request = self.build_request(text, voice)
        _debug_log(f"google synthesize voice={voice} rate={self.speaking_rate}")
        try:
            response = self._get_client().synthesize_speech(request=request)
        except google_exceptions.GoogleAPIError as exc:
            raise GoogleSpeechError(f"Google Text-to-Speech request failed: {exc}") from exc
        timepoints = [
            Timepoint(mark_name=point.mark_name, time_seconds=float(point.time_seconds or 0.0))
            for point in (response.timepoints or [])
        ]
        return SynthesisResult(audio=bytes(response.audio_content), timepoints=timepoints)


class VoiceVoxSynthesizer:
    """
    Thin wrapper around the VoiceVox HTTP API.

    VoiceVox reads plain text, so display markup is sanitized first and no
    timepoints are returned; the adjusted audio query is exposed in ``extra``.
    """

    accepts_ssml = False
    audio_extension = ".wav"

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:50021",
        *,
        style: str = "ノーマル",
        speed_scale: float = 1.21,
        pitch_scale: float = 0.0,
        intonation_scale: float = 1.05,
        volume_scale: float = 0.9,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.style = style
        self.speed_scale = speed_scale
        self.pitch_scale = pitch_scale
        self.intonation_scale = intonation_scale
        self.volume_scale = volume_scale
        self.timeout = timeout
        self._session = session or requests.Session()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        payload: Any = None,
    ) -> requests.Response:
        try:
            resp = self._session.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise VoiceVoxUnavailableError(
                f"Failed to contact VoiceVox engine at {self.base_url}"
            ) from exc
        if resp.status_code != 200:
            raise VoiceVoxError(f"{path} failed with status {resp.status_code}: {resp.text}")
        return resp

    def _json(self, resp: requests.Response, path: str) -> Any:
        try:
            return resp.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise VoiceVoxError(f"VoiceVox returned invalid JSON for {path}") from exc

    def resolve_style_id(self, speaker_name: str) -> int:
        speakers = self._json(self._request("GET", "/speakers"), "/speakers")
        speaker = next(
            (entry for entry in speakers if entry.get("name") == speaker_name),
            None,
        )
        if speaker is None:
            raise VoiceVoxError(f'Speaker with name "{speaker_name}" not found')
        style = next(
            (entry for entry in speaker.get("styles", []) if entry.get("name") == self.style),
            None,
        )
        if style is None:
            raise VoiceVoxError(f'Style "{self.style}" not found for speaker "{speaker_name}"')
        style_id = style.get("id")
        if style_id is None:
            raise VoiceVoxError(f'Style ID is undefined for speaker "{speaker_name}"')
        return int(style_id)

    def build_audio_query(self, text: str, style_id: int) -> dict:
        query = self._json(
            self._request("POST", "/audio_query", params={"text": text, "speaker": style_id}),
            "/audio_query",
        )
        query["speedScale"] = float(self.speed_scale)
        query["pitchScale"] = float(self.pitch_scale)
        query["intonationScale"] = float(self.intonation_scale)
        query["volumeScale"] = float(self.volume_scale)
        return query

    def synthesize(self, text: str, voice: str) -> SynthesisResult:
        normalized = sanitize_display_text(text)
        style_id = self.resolve_style_id(voice)
        _debug_log(f"voicevox synthesize speaker={voice} style_id={style_id}")
        query = self.build_audio_query(normalized, style_id)
        resp = self._request("POST", "/synthesis", params={"speaker": style_id}, payload=query)
        return SynthesisResult(
            audio=resp.content,
            extra={"audio_query": query, "normalized_text": normalized},
        )

    def close(self) -> None:
        self._session.close()


def create_synthesizer(config: SynthesisConfig) -> SpeechSynthesizer:
    backend = (config.backend or "").strip().lower()
    if backend == "google":
        return GoogleSpeechSynthesizer(
            language_code=config.language_code,
            speaking_rate=config.speaking_rate,
        )
    if backend == "voicevox":
        return VoiceVoxSynthesizer(
            config.voicevox_url,
            style=config.voicevox_style,
            speed_scale=config.voicevox_speed,
            pitch_scale=config.voicevox_pitch,
            intonation_scale=config.voicevox_intonation,
            volume_scale=config.voicevox_volume,
            timeout=config.timeout,
        )
    raise ValueError(f"Unknown speech backend: {config.backend!r} (expected google or voicevox)")
