# learncheck/history.py
import logging
from datetime import datetime, timezone
from typing import Dict, List

from pydantic import ValidationError

from learncheck.cache import CacheBackend, build_history_key
from learncheck.schemas import AttemptRecord, Question, SubmissionIn

logger = logging.getLogger(__name__)


def grade_attempt(questions: List[Question], answers: Dict[str, str]) -> int:
    """Count correct answers. Answers are keyed by 0-based question index."""
    correct = 0
    for index, question in enumerate(questions):
        if answers.get(str(index)) == question.correct_answer:
            correct += 1
    return correct


class AttemptHistory:
    """Append-only attempt history per (user, tutorial), kept in the cache store without expiry."""

    def __init__(self, cache: CacheBackend):
        self.cache = cache

    async def record(self, submission: SubmissionIn) -> AttemptRecord:
        score = grade_attempt(submission.questions, submission.answers)
        record = AttemptRecord(
            attempt_number=submission.attempt_number,
            score=score,
            total=len(submission.questions),
            difficulty=submission.difficulty,
            timestamp=datetime.now(timezone.utc).isoformat(),
            questions=submission.questions,
            answers=submission.answers,
        )
        key = build_history_key(submission.user_id, submission.tutorial_id)
        await self.cache.append(key, record.model_dump(by_alias=True))
        logger.info(
            "Assessment submission received: user=%s tutorial=%s score=%d/%d",
            submission.user_id, submission.tutorial_id, score, record.total,
        )
        return record

    async def list(self, user_id: str, tutorial_id: str) -> List[AttemptRecord]:
        records = []
        for item in await self.cache.get_list(build_history_key(user_id, tutorial_id)):
            try:
                records.append(AttemptRecord.model_validate(item))
            except ValidationError:
                logger.warning("Skipping malformed attempt record for %s/%s", user_id, tutorial_id)
        return records

    async def clear(self, user_id: str, tutorial_id: str) -> bool:
        return await self.cache.delete(build_history_key(user_id, tutorial_id))
