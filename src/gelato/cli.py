from __future__ import annotations

import logging
import os
import shutil
import sys
from pathlib import Path

import typer

from gelato.core import config as config_core, envelope, practice, similarity as similarity_core, transcribe
from gelato.core.jsonio import dumps, load_object
from gelato.core.transcribe import TranscriptionUnavailableError

VERSION = "0.1.0"

app = typer.Typer(add_completion=False, help="gelato - pronunciation practice scoring engine")

logger = logging.getLogger("gelato")


def _emit(out: dict) -> None:
    typer.echo(dumps(out))
    if out.get("ok") is True:
        raise typer.Exit(code=0)
    raise typer.Exit(code=1)


def _error_type_for(exc: TranscriptionUnavailableError) -> str:
    if exc.reason == "tool_missing":
        return "TOOL_MISSING"
    if exc.reason == "backend_failed":
        return "BACKEND_FAILED"
    return "TRANSCRIPTION_UNAVAILABLE"


def _thresholds(strict: float | None, lenient: float | None) -> tuple[float, float]:
    strict = config_core.strict_correct_threshold() if strict is None else strict
    lenient = config_core.lenient_accept_threshold() if lenient is None else lenient
    return strict, lenient


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---- Sub-apps (public CLI contract) ----
score_app = typer.Typer(add_completion=False, help="Pure text scoring")
practice_app = typer.Typer(add_completion=False, help="Transcribe and judge practice attempts")

app.add_typer(score_app, name="score")
app.add_typer(practice_app, name="practice")


# ---- Global commands ----
@app.command()
def version(json_output: bool = typer.Option(False, "--json", help="Output JSON envelope")):
    if json_output:
        _emit(envelope.ok(command="version", data={"version": VERSION}))
    typer.echo(f"gelato {VERSION}")


@app.command()
def doctor(json_output: bool = typer.Option(True, "--json")):
    checks: list[dict] = []

    path = config_core.config_path()
    try:
        config_core.get_config()
    except ValueError as exc:
        checks.append({"name": "config.file", "ok": False, "details": {"path": str(path), "error": str(exc)}})
    else:
        checks.append({"name": "config.file", "ok": True, "details": {"path": str(path), "exists": path.exists()}})

    try:
        strict, lenient = _thresholds(None, None)
    except ValueError as exc:
        checks.append({"name": "scoring.thresholds", "ok": False, "details": {"error": str(exc)}})
    else:
        checks.append(
            {
                "name": "scoring.thresholds",
                "ok": True,
                "details": {"strict_correct": strict, "lenient_accept": lenient},
            }
        )

    whisper_path = shutil.which("whisper")
    checks.append({"name": "tool.whisper", "ok": whisper_path is not None, "details": {"path": whisper_path}})
    override = os.environ.get("GELATO_TRANSCRIBE_BACKEND")
    try:
        backend = config_core.transcribe_backend()
    except ValueError as exc:
        checks.append({"name": "transcribe.backend", "ok": False, "details": {"error": str(exc), "override": override}})
    else:
        checks.append(
            {
                "name": "transcribe.backend",
                "ok": backend in transcribe.SUPPORTED_BACKENDS,
                "details": {"backend": backend, "override": override},
            }
        )

    _emit(envelope.ok(command="doctor", data={"checks": checks}))


# -------------- score --------------
@score_app.command("distance")
def score_distance(
    a: str = typer.Option(..., "--a"),
    b: str = typer.Option(..., "--b"),
    json_output: bool = typer.Option(True, "--json"),
):
    distance = similarity_core.levenshtein_distance(a, b)
    _emit(envelope.ok(command="score.distance", data={"a": a, "b": b, "distance": distance}))


@score_app.command("similarity")
def score_similarity(
    a: str = typer.Option(..., "--a"),
    b: str = typer.Option(..., "--b"),
    ignore_case: bool = typer.Option(False, "--ignore-case"),
    json_output: bool = typer.Option(True, "--json"),
):
    left, right = (a.lower(), b.lower()) if ignore_case else (a, b)
    value = similarity_core.similarity(left, right)
    _emit(
        envelope.ok(
            command="score.similarity",
            data={"a": a, "b": b, "ignore_case": ignore_case, "similarity": value},
        )
    )


@score_app.command("compare")
def score_compare(
    transcription: str = typer.Option(..., "--transcription"),
    expected: str = typer.Option(..., "--expected"),
    lang: str | None = typer.Option(None, "--lang"),
    strict_threshold: float | None = typer.Option(None, "--strict-threshold", min=0.0, max=1.0),
    lenient_threshold: float | None = typer.Option(None, "--lenient-threshold", min=0.0, max=1.0),
    json_output: bool = typer.Option(True, "--json"),
):
    try:
        strict, lenient = _thresholds(strict_threshold, lenient_threshold)
        language = lang or config_core.default_language()
    except ValueError as exc:
        _emit(envelope.err(command="score.compare", error_type="INVALID_ARGUMENT", message=str(exc)))
    result = practice.compare(transcription, expected, language, strict_threshold=strict)
    feedback = practice.pronunciation_feedback(result, expected, lenient_threshold=lenient)
    out = envelope.ok(
        command="score.compare",
        data={
            "expected": expected,
            "language": language,
            "result": result.to_dict(),
            "advance": feedback.advance,
            "score": feedback.score,
            "feedback": feedback.message,
        },
        limits={"strict_correct_threshold": strict, "lenient_accept_threshold": lenient},
    )
    _emit(out)


# -------------- practice --------------
@practice_app.command("validate")
def practice_validate(
    in_path: str = typer.Option(..., "--in", help="Recorded attempt (audio, or transcript for transcript-file)"),
    expected: str = typer.Option(..., "--expected"),
    lang: str | None = typer.Option(None, "--lang"),
    backend: str | None = typer.Option(None, "--backend", help="whisper|transcript-file"),
    json_output: bool = typer.Option(True, "--json"),
):
    command = "practice.validate"
    details = {"in": in_path, "expected": expected, "language": lang, "backend": backend}
    try:
        backend = config_core.transcribe_backend(backend)
        language = lang or config_core.default_language()
        details.update(language=language, backend=backend)
        strict, lenient = _thresholds(None, None)
        transcriber = transcribe.get_transcriber(backend)
        result = practice.transcribe_and_validate(
            in_path,
            expected,
            language,
            transcriber=transcriber,
            strict_threshold=strict,
        )
    except TranscriptionUnavailableError as exc:
        logger.warning("transcription unavailable (%s): %s", exc.reason, exc)
        out = envelope.err(
            command=command,
            error_type=_error_type_for(exc),
            message=str(exc),
            details={**details, "reason": exc.reason, **exc.details},
        )
    except ValueError as exc:
        out = envelope.err(command=command, error_type="INVALID_ARGUMENT", message=str(exc), details=details)
    else:
        feedback = practice.pronunciation_feedback(result, expected, lenient_threshold=lenient)
        out = envelope.ok(
            command=command,
            data={
                **details,
                "result": result.to_dict(),
                "advance": feedback.advance,
                "score": feedback.score,
                "feedback": feedback.message,
            },
            limits={"strict_correct_threshold": strict, "lenient_accept_threshold": lenient},
        )
    _emit(out)


@practice_app.command("replay")
def practice_replay(
    in_path: str = typer.Option(..., "--in", help="Session JSON with lesson_id, items and attempts"),
    lang: str | None = typer.Option(None, "--lang"),
    backend: str | None = typer.Option(None, "--backend", help="whisper|transcript-file"),
    json_output: bool = typer.Option(True, "--json"),
):
    command = "practice.replay"
    details = {"in": in_path, "language": lang, "backend": backend}
    path = Path(in_path).expanduser()
    if not path.is_file():
        _emit(envelope.err(command=command, error_type="NOT_FOUND", message=f"Session file not found: {path}", details=details))
    try:
        backend = config_core.transcribe_backend(backend)
        language = lang or config_core.default_language()
        details.update(language=language, backend=backend)
        strict, lenient = _thresholds(None, None)
        session = practice.replay_session(
            load_object(path),
            transcriber_factory=lambda: transcribe.get_transcriber(backend),
            language=language,
            strict_threshold=strict,
            lenient_threshold=lenient,
        )
    except TranscriptionUnavailableError as exc:
        logger.warning("transcription unavailable (%s): %s", exc.reason, exc)
        out = envelope.err(
            command=command,
            error_type=_error_type_for(exc),
            message=str(exc),
            details={**details, "reason": exc.reason, **exc.details},
        )
    except ValueError as exc:
        out = envelope.err(command=command, error_type="INVALID_ARGUMENT", message=str(exc), details=details)
    else:
        out = envelope.ok(
            command=command,
            data=session.summary(),
            limits={"strict_correct_threshold": strict, "lenient_accept_threshold": lenient},
        )
    _emit(out)


if __name__ == "__main__":
    app()
