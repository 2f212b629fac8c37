from __future__ import annotations

import pytest

from gelato.core import ids
from gelato.core.practice import (
    ComparisonInput,
    ComparisonResult,
    PracticeItem,
    PracticeSession,
    compare,
    compare_input,
    pronunciation_feedback,
    should_advance,
    transcribe_and_validate,
)
from gelato.core.transcribe import StaticTranscriber, TranscriptionUnavailableError


class RecordingTranscriber:
    def __init__(self, text: str) -> None:
        self.text = text
        self.calls: list[tuple[str, str | None]] = []

    def transcribe(self, audio: str, language_hint: str | None = None) -> str:
        self.calls.append((audio, language_hint))
        return self.text


class FailingTranscriber:
    def transcribe(self, audio: str, language_hint: str | None = None) -> str:
        raise TranscriptionUnavailableError("backend_failed", "speech service down")


def test_compare_lowercases_both_sides() -> None:
    result = compare("hola", "Hola")
    assert result.similarity == 1.0
    assert result.is_correct is True


def test_compare_near_miss_fails_strict_but_passes_lenient() -> None:
    result = compare("ola", "hola")
    assert result.similarity == pytest.approx(0.75)
    assert result.is_correct is False
    assert should_advance(result) is True


def test_compare_verdict_is_strictly_greater_than_threshold() -> None:
    # 0.8 exactly is not enough
    result = compare("holaa", "hola")
    assert result.similarity == pytest.approx(0.8)
    assert result.is_correct is False


def test_is_correct_always_matches_similarity() -> None:
    pairs = [("hola", "hola"), ("ola", "hola"), ("cat", "dog"), ("", ""), ("gracias", "grasias"), ("casa", "cosa")]
    for transcription, expected in pairs:
        result = compare(transcription, expected)
        assert result.is_correct is (result.similarity > 0.8)


def test_compare_keeps_raw_transcription() -> None:
    result = compare("Hasta Luego", "hasta luego")
    assert result.transcription == "Hasta Luego"


def test_compare_input_uses_value_fields() -> None:
    value = ComparisonInput(transcription="agua", expected="Agua", language="es")
    assert compare_input(value).is_correct is True


def test_strict_threshold_override() -> None:
    result = compare("ola", "hola", strict_threshold=0.7)
    assert result.is_correct is True


def test_strict_threshold_comes_from_env(monkeypatch) -> None:
    monkeypatch.setenv("GELATO_STRICT_CORRECT_THRESHOLD", "0.7")
    assert compare("ola", "hola").is_correct is True


def test_transcribe_and_validate_passes_language_hint() -> None:
    transcriber = RecordingTranscriber("Hola")
    result = transcribe_and_validate("clip.wav", "hola", "es", transcriber=transcriber)
    assert transcriber.calls == [("clip.wav", "es")]
    assert result == ComparisonResult(transcription="Hola", similarity=1.0, is_correct=True)


def test_transcribe_and_validate_surfaces_transcription_failure() -> None:
    with pytest.raises(TranscriptionUnavailableError) as excinfo:
        transcribe_and_validate("clip.wav", "hola", "es", transcriber=FailingTranscriber())
    assert excinfo.value.reason == "backend_failed"


def test_should_advance_respects_lenient_threshold() -> None:
    result = ComparisonResult(transcription="ola", similarity=0.75, is_correct=False)
    assert should_advance(result, 0.7) is True
    assert should_advance(result, 0.75) is False


def test_feedback_messages() -> None:
    good = pronunciation_feedback(compare("hola", "hola"), "hola")
    assert good.advance is True
    assert good.score == 100
    assert good.message == "Excellent! That sounded great!"

    bad = pronunciation_feedback(compare("perro", "gato"), "gato")
    assert bad.advance is False
    assert bad.message == 'Try again like this: "gato"'


def _session() -> PracticeSession:
    return PracticeSession(
        lesson_id="lesson-1",
        items=[PracticeItem(item_id="1", word="casa"), PracticeItem(item_id="2", word="agua")],
    )


def test_session_ids_are_ulids() -> None:
    session = _session()
    assert ids.is_session_id(session.session_id)


def test_session_retry_then_advance(monkeypatch) -> None:
    monkeypatch.setenv("GELATO_TEST_NOW_ISO", "2026-01-01T00:00:00Z")
    session = _session()

    response, feedback = session.submit(compare("casa", "casa"))
    assert feedback.advance is True
    assert response.attempts == 1
    assert ids.is_response_id(response.response_id)
    assert session.current_item.word == "agua"

    response, feedback = session.submit(compare("awa", "agua"))
    assert feedback.advance is False
    assert session.attempt_count == 1
    assert len(session.responses) == 1

    response, feedback = session.submit(compare("agu", "agua"))
    assert feedback.advance is True
    assert response.attempts == 2
    assert response.is_correct is False

    assert session.completed is True
    assert session.completed_at.isoformat() == "2026-01-01T00:00:00+00:00"
    assert session.accuracy == 50
    assert session.is_perfect is False


def test_session_accuracy_is_zero_without_responses() -> None:
    assert _session().accuracy == 0


def test_session_rejects_submit_after_completion() -> None:
    session = PracticeSession(lesson_id="l", items=[PracticeItem(item_id="1", word="si")])
    session.submit(compare("si", "si"))
    with pytest.raises(ValueError, match="already completed"):
        session.submit(compare("si", "si"))


def test_static_transcriber_in_session_flow() -> None:
    session = _session()
    transcriber = StaticTranscriber("Casa")
    result = transcribe_and_validate("x.wav", session.current_item.word, "es", transcriber=transcriber)
    _, feedback = session.submit(result)
    assert feedback.advance is True
    assert session.summary()["items_passed"] == 1


def test_accuracy_rounds_halves_up() -> None:
    session = PracticeSession(
        lesson_id="l",
        items=[PracticeItem(item_id=str(i), word="agua") for i in range(8)],
    )
    session.submit(compare("agua", "agua"))
    for _ in range(7):
        _, feedback = session.submit(compare("agu", "agua"))
        assert feedback.advance is True
    assert session.completed is True
    assert len(session.responses) == 8
    assert session.accuracy == 13


def test_feedback_score_rounds_halves_up() -> None:
    result = compare("a", "abcdefgh")
    assert result.similarity == 0.125
    assert pronunciation_feedback(result, "abcdefgh").score == 13
