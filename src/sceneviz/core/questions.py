"""In-memory question/answer store behind the submission API."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sceneviz.core.events import ANSWER_CREATED, QUESTION_CREATED
from sceneviz.exceptions import AnswerNotFoundError, InvalidSubmissionError, QuestionNotFoundError
from sceneviz.models import AnswerRecord, QuestionRecord, QuestionWithAnswer, SubmitResult

if TYPE_CHECKING:
    from sceneviz.core.events import EventBus
    from sceneviz.core.generator import SceneGenerator

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class QuestionService:
    """Records questions, generates answers and announces both on the bus.

    State lives for the lifetime of the process only.
    """

    def __init__(self, generator: SceneGenerator, bus: EventBus) -> None:
        self.generator = generator
        self.bus = bus
        self._questions: dict[str, QuestionRecord] = {}
        self._answers: dict[str, AnswerRecord] = {}

    async def submit(self, user_id: str | None, question: str | None) -> SubmitResult:
        if not user_id or not question or not question.strip():
            raise InvalidSubmissionError("User ID and question are required")

        record = QuestionRecord(
            id=f"q_{uuid.uuid4()}",
            user_id=user_id,
            question=question.strip(),
            timestamp=_now(),
        )
        self._questions[record.id] = record
        self.bus.publish(QUESTION_CREATED, record.model_dump(by_alias=True, mode="json"))
        logger.info("Question %s from %s: %s", record.id, user_id, record.question)

        answer = await self.generator.generate(record.question)
        stored = AnswerRecord(
            id=f"a_{uuid.uuid4()}",
            question_id=record.id,
            text=answer.text,
            visualization=answer.visualization,
            animation_description=answer.animation_description,
            source=answer.source,
            timestamp=_now(),
        )
        self._answers[stored.id] = stored
        record.answer_id = stored.id
        self.bus.publish(ANSWER_CREATED, self.answer_payload(stored))
        logger.info("Answer %s ready (%s)", stored.id, stored.source.value)

        return SubmitResult(question_id=record.id, answer_id=stored.id)

    @staticmethod
    def answer_payload(answer: AnswerRecord) -> dict:
        payload = answer.model_dump(by_alias=True, mode="json", exclude={"visualization"})
        payload["visualization"] = answer.visualization.to_wire() if answer.visualization else None
        return payload

    def list_questions(self) -> list[QuestionWithAnswer]:
        return [
            QuestionWithAnswer(
                **q.model_dump(),
                answer=self._answers.get(q.answer_id) if q.answer_id else None,
            )
            for q in self._questions.values()
        ]

    def get_question(self, question_id: str) -> QuestionRecord:
        try:
            return self._questions[question_id]
        except KeyError:
            raise QuestionNotFoundError(question_id) from None

    def get_answer(self, answer_id: str) -> AnswerRecord:
        try:
            return self._answers[answer_id]
        except KeyError:
            raise AnswerNotFoundError(answer_id) from None
