from __future__ import annotations

from dataclasses import dataclass, asdict, field
from datetime import datetime
import logging
import math
from typing import Callable

from gelato.core import clock, config as config_core, ids
from gelato.core.similarity import similarity
from gelato.core.transcribe import Transcriber

logger = logging.getLogger(__name__)

ADVANCE_MESSAGE = "Excellent! That sounded great!"
RETRY_MESSAGE = 'Try again like this: "{expected}"'


def percent(value: float) -> int:
    """Express a 0..1 ratio as a whole percentage, rounding halves up."""
    return math.floor(value * 100 + 0.5)


@dataclass(frozen=True)
class ComparisonInput:
    transcription: str
    expected: str
    language: str = config_core.DEFAULT_LANGUAGE


@dataclass(frozen=True)
class ComparisonResult:
    transcription: str
    similarity: float
    is_correct: bool

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Feedback:
    advance: bool
    score: int
    message: str


def compare(
    transcription: str,
    expected: str,
    language: str = config_core.DEFAULT_LANGUAGE,
    *,
    strict_threshold: float | None = None,
) -> ComparisonResult:
    """Score a transcription against the expected text, ignoring case.

    `language` is carried for the caller's benefit and does not change the score.
    """
    if strict_threshold is None:
        strict_threshold = config_core.strict_correct_threshold()
    score = similarity(transcription.lower(), expected.lower())
    result = ComparisonResult(
        transcription=transcription,
        similarity=score,
        is_correct=score > strict_threshold,
    )
    logger.debug(
        "compare language=%s similarity=%.3f threshold=%.2f correct=%s",
        language,
        score,
        strict_threshold,
        result.is_correct,
    )
    return result


def compare_input(value: ComparisonInput, *, strict_threshold: float | None = None) -> ComparisonResult:
    return compare(value.transcription, value.expected, value.language, strict_threshold=strict_threshold)


def transcribe_and_validate(
    audio: str,
    expected_text: str,
    language: str,
    *,
    transcriber: Transcriber,
    strict_threshold: float | None = None,
) -> ComparisonResult:
    """Transcribe `audio` and judge it against `expected_text`.

    Transcriber failures propagate as TranscriptionUnavailableError before
    any scoring happens.
    """
    transcription = transcriber.transcribe(audio, language)
    return compare(transcription, expected_text, language, strict_threshold=strict_threshold)


def should_advance(result: ComparisonResult, lenient_threshold: float | None = None) -> bool:
    if lenient_threshold is None:
        lenient_threshold = config_core.lenient_accept_threshold()
    return result.is_correct or result.similarity > lenient_threshold


def pronunciation_feedback(
    result: ComparisonResult,
    expected: str,
    *,
    lenient_threshold: float | None = None,
) -> Feedback:
    advance = should_advance(result, lenient_threshold)
    message = ADVANCE_MESSAGE if advance else RETRY_MESSAGE.format(expected=expected)
    return Feedback(advance=advance, score=percent(result.similarity), message=message)


@dataclass(frozen=True)
class PracticeItem:
    item_id: str
    word: str
    translation: str | None = None
    phonetic: str | None = None


@dataclass(frozen=True)
class PracticeResponse:
    response_id: str
    item_id: str
    user_response: str
    expected_response: str
    is_correct: bool
    attempts: int


@dataclass
class PracticeSession:
    """One pass over a lesson's practice items.

    An item is only left behind once an attempt clears the lenient bar;
    failed attempts bump the attempt counter and re-prompt the same item.
    """

    lesson_id: str
    items: list[PracticeItem]
    session_id: str = field(default_factory=ids.session_id)
    started_at: datetime = field(default_factory=clock.now_utc)
    completed_at: datetime | None = None
    responses: list[PracticeResponse] = field(default_factory=list)
    current_index: int = 0
    attempt_count: int = 0
    lenient_threshold: float | None = None

    @property
    def completed(self) -> bool:
        return self.current_index >= len(self.items)

    @property
    def current_item(self) -> PracticeItem | None:
        if self.completed:
            return None
        return self.items[self.current_index]

    def submit(self, result: ComparisonResult) -> tuple[PracticeResponse, Feedback]:
        item = self.current_item
        if item is None:
            raise ValueError(f"Practice session {self.session_id} is already completed")

        attempts = self.attempt_count + 1
        response = PracticeResponse(
            response_id=ids.response_id(),
            item_id=item.item_id,
            user_response=result.transcription,
            expected_response=item.word,
            is_correct=result.is_correct,
            attempts=attempts,
        )
        feedback = pronunciation_feedback(result, item.word, lenient_threshold=self.lenient_threshold)

        if feedback.advance:
            self.responses.append(response)
            self.current_index += 1
            self.attempt_count = 0
            if self.completed:
                self.completed_at = clock.now_utc()
                logger.info("practice session %s completed accuracy=%d", self.session_id, self.accuracy)
        else:
            self.attempt_count = attempts
        return response, feedback

    @property
    def accuracy(self) -> int:
        if not self.responses:
            return 0
        correct = sum(1 for r in self.responses if r.is_correct)
        return math.floor(correct * 100 / len(self.responses) + 0.5)

    @property
    def is_perfect(self) -> bool:
        return self.accuracy == 100

    def summary(self) -> dict:
        return {
            "session_id": self.session_id,
            "lesson_id": self.lesson_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "completed": self.completed,
            "items_total": len(self.items),
            "items_passed": self.current_index,
            "accuracy": self.accuracy,
            "is_perfect": self.is_perfect,
            "responses": [asdict(r) for r in self.responses],
        }


def _blank(value: object) -> bool:
    return value is None or value == ""


def _optional_text(value: object) -> str | None:
    return None if value is None else str(value)


def _parse_items(raw_items: object) -> list[PracticeItem]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValueError("session file needs a non-empty 'items' list")
    items = []
    for i, raw in enumerate(raw_items):
        if not isinstance(raw, dict) or _blank(raw.get("item_id")) or _blank(raw.get("word")):
            raise ValueError(f"items[{i}] needs 'item_id' and 'word'")
        items.append(
            PracticeItem(
                item_id=str(raw["item_id"]),
                word=str(raw["word"]),
                translation=_optional_text(raw.get("translation")),
                phonetic=_optional_text(raw.get("phonetic")),
            )
        )
    return items


def replay_session(
    payload: dict,
    *,
    transcriber: Transcriber | None = None,
    transcriber_factory: Callable[[], Transcriber] | None = None,
    language: str,
    strict_threshold: float | None = None,
    lenient_threshold: float | None = None,
) -> PracticeSession:
    """Drive a PracticeSession from a recorded list of attempts.

    Each attempt names the item it was made against and carries either a
    ready `transcription` or an `audio` reference for the transcriber. When
    only `transcriber_factory` is given it is called on the first audio attempt.
    Attempts for an item other than the current one are rejected.
    """
    lesson_id = payload.get("lesson_id")
    if not isinstance(lesson_id, str) or not lesson_id:
        raise ValueError("session file needs a 'lesson_id'")
    session = PracticeSession(
        lesson_id=lesson_id,
        items=_parse_items(payload.get("items")),
        lenient_threshold=lenient_threshold,
    )

    attempts = payload.get("attempts") or []
    if not isinstance(attempts, list):
        raise ValueError("'attempts' must be a list")
    for i, attempt in enumerate(attempts):
        if not isinstance(attempt, dict):
            raise ValueError(f"attempts[{i}] must be an object")
        item = session.current_item
        if item is None:
            raise ValueError(f"attempts[{i}] arrives after the session completed")
        if _optional_text(attempt.get("item_id")) != item.item_id:
            raise ValueError(f"attempts[{i}] targets {attempt.get('item_id')!r}, current item is {item.item_id!r}")

        if "transcription" in attempt:
            result = compare(str(attempt["transcription"]), item.word, language, strict_threshold=strict_threshold)
        elif attempt.get("audio"):
            if transcriber is None and transcriber_factory is not None:
                transcriber = transcriber_factory()
            if transcriber is None:
                raise ValueError(f"attempts[{i}] has audio but no transcriber is configured")
            result = transcribe_and_validate(
                str(attempt["audio"]),
                item.word,
                language,
                transcriber=transcriber,
                strict_threshold=strict_threshold,
            )
        else:
            raise ValueError(f"attempts[{i}] needs 'transcription' or 'audio'")
        session.submit(result)
    return session
