from __future__ import annotations

import json
import logging
from pathlib import Path
import tempfile
from typing import Protocol

from gelato.core import config as config_core
from gelato.core.process import ProcessFailedError, ToolMissingError, ensure_tool, run_checked

logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = ("whisper", "transcript-file")
WHISPER_TIMEOUT_SECONDS = 300


class TranscriptionUnavailableError(RuntimeError):
    """No usable transcription could be produced for an audio sample.

    `reason` is one of: audio_missing, tool_missing, backend_failed,
    output_missing, empty.
    """

    def __init__(self, reason: str, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.reason = reason
        self.details = details or {}


class Transcriber(Protocol):
    def transcribe(self, audio: str, language_hint: str | None = None) -> str: ...


def _require_audio(audio: str) -> Path:
    path = Path(audio).expanduser()
    if not path.exists():
        raise TranscriptionUnavailableError(
            "audio_missing",
            f"Audio file not found: {path}",
            {"audio": str(path)},
        )
    return path


def _require_text(text: str, *, audio: str, backend: str) -> str:
    text = text.strip()
    if not text:
        raise TranscriptionUnavailableError(
            "empty",
            "Transcriber returned no speech",
            {"audio": audio, "backend": backend},
        )
    return text


def build_whisper_command(in_path: Path, out_dir: Path, *, model: str, language: str | None) -> list[str]:
    cmd = [
        "whisper",
        str(in_path),
        "--model",
        model,
        "--output_format",
        "json",
        "--output_dir",
        str(out_dir),
        "--task",
        "transcribe",
    ]
    if language:
        cmd += ["--language", language]
    return cmd


class WhisperTranscriber:
    """Local speech-to-text through the `whisper` command line tool."""

    backend_id = "whisper"

    def __init__(self, model: str | None = None, timeout: float | None = WHISPER_TIMEOUT_SECONDS) -> None:
        self.model = model or config_core.whisper_model()
        self.timeout = timeout

    def transcribe(self, audio: str, language_hint: str | None = None) -> str:
        in_path = _require_audio(audio)
        try:
            ensure_tool("whisper")
        except ToolMissingError as exc:
            raise TranscriptionUnavailableError("tool_missing", str(exc), {"tool": exc.tool}) from exc

        with tempfile.TemporaryDirectory(prefix="gelato-stt-") as tmp:
            out_dir = Path(tmp)
            cmd = build_whisper_command(in_path, out_dir, model=self.model, language=language_hint)
            logger.debug("running whisper model=%s language=%s audio=%s", self.model, language_hint, in_path)
            try:
                run_checked(cmd, timeout=self.timeout)
            except ProcessFailedError as exc:
                raise TranscriptionUnavailableError(
                    "backend_failed",
                    "whisper failed during transcription",
                    {"cmd": exc.cmd, "returncode": exc.returncode, "stderr": exc.stderr[-2000:]},
                ) from exc

            output_json = out_dir / in_path.with_suffix(".json").name
            try:
                raw = json.loads(output_json.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                raise TranscriptionUnavailableError(
                    "output_missing",
                    f"Whisper output not readable: {output_json.name}",
                    {"audio": str(in_path)},
                ) from exc

        return _require_text(raw.get("text") or "", audio=str(in_path), backend=self.backend_id)


class TranscriptFileTranscriber:
    """Reads a transcript that was produced ahead of time.

    The audio reference is either the transcript itself (`.txt`) or an audio
    file with a `.txt` sidecar next to it.
    """

    backend_id = "transcript-file"

    def transcribe(self, audio: str, language_hint: str | None = None) -> str:
        path = _require_audio(audio)
        if path.suffix != ".txt":
            path = path.with_suffix(".txt")
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TranscriptionUnavailableError(
                "output_missing",
                f"Transcript not found: {path}",
                {"audio": audio},
            ) from exc
        return _require_text(text, audio=audio, backend=self.backend_id)


class StaticTranscriber:
    """Always hears the same thing. Handy as a deterministic stand-in."""

    backend_id = "static"

    def __init__(self, text: str) -> None:
        self.text = text

    def transcribe(self, audio: str, language_hint: str | None = None) -> str:
        return _require_text(self.text, audio=audio, backend=self.backend_id)


def get_transcriber(backend: str) -> Transcriber:
    if backend == "whisper":
        return WhisperTranscriber()
    if backend == "transcript-file":
        return TranscriptFileTranscriber()
    raise ValueError(f"Unsupported backend: {backend} (expected one of {', '.join(SUPPORTED_BACKENDS)})")
