"""
Answer ingestion service

Records one player's answer to a published question, exactly once.
The (question_id, user_id) primary key on answers is the real guard: the
pre-check below only gives the common case a clean rejection without a
failed insert, and two concurrent submissions still end with one row.
"""
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from watchparty.config import settings
from watchparty.models import Answer, Question
from watchparty.models.room import ROOM_QUIZ
from watchparty.services.room_service import room_service
from watchparty.services.scoring import clamp_time_left, score_answer
from watchparty.utils.errors import (
    AlreadyAnswered,
    Forbidden,
    NotFound,
    QuizNotActive,
    StorageError,
    ValidationError,
)
from watchparty.utils.notifier import InvalidationTopic, invalidation_notifier

logger = logging.getLogger(__name__)


class AnswerService:
    """Validates, scores and appends answers to the answer log"""

    def __init__(self, notifier=invalidation_notifier, rooms=room_service):
        self.notifier = notifier
        self.rooms = rooms

    def submit_answer(
        self,
        db: Session,
        question_id: UUID,
        user_id: UUID,
        option_index: int,
        time_left: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Record an answer and return its score

        Args:
            db: Database session
            question_id: Question being answered
            user_id: Answering player
            option_index: Selected option (0-based)
            time_left: Seconds left on the client's timer; clamped to [0, duration]

        Returns:
            Dictionary with score, is_correct and the clamped time_left

        Raises:
            NotFound: unknown question, or the user is not in the room
            QuizNotActive: room not in quiz, or question not published
            Forbidden: the host tried to answer
            ValidationError: option index out of range
            AlreadyAnswered: the user already answered this question
        """
        question = db.query(Question).filter(Question.id == question_id).first()
        if not question:
            raise NotFound("Question not found", {"resource": "question", "question_id": str(question_id)})

        room = self.rooms.get_room(db, question.room_id)

        if room.status != ROOM_QUIZ or not question.published:
            logger.warning(
                f"Answer rejected for question {question_id}: room={room.status}, "
                f"published={question.published}"
            )
            raise QuizNotActive(
                "This question is not open for answers",
                {"status": room.status, "published": bool(question.published)}
            )

        if room.host_id == user_id:
            raise Forbidden("The host does not take part in the quiz", {"room_id": str(room.id)})

        if not self.rooms.get_member(db, room.id, user_id):
            raise NotFound("Not a member of this room", {"resource": "member", "user_id": str(user_id)})

        if isinstance(option_index, bool) or not isinstance(option_index, int) \
                or not 0 <= option_index < len(question.options):
            raise ValidationError(
                "Option index is out of range",
                {"field": "option_index", "value": option_index, "options": len(question.options)}
            )

        existing = db.query(Answer).filter(
            Answer.question_id == question.id,
            Answer.user_id == user_id
        ).first()
        if existing:
            raise self._already_answered(question.id, user_id)

        correct = option_index == question.correct_index
        mode = room.scoring_mode or settings.DEFAULT_SCORING_MODE
        clamped = clamp_time_left(time_left, question.duration_seconds)
        score = score_answer(mode, correct, question.duration_seconds, clamped)

        db.add(Answer(
            question_id=question.id,
            user_id=user_id,
            option_index=option_index,
            is_correct=correct,
            score=score,
            time_left=clamped,
        ))
        try:
            db.commit()
        except IntegrityError:
            # lost the race against a concurrent submission for the same pair
            db.rollback()
            raise self._already_answered(question_id, user_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Storage failure recording answer {question_id}/{user_id}: {str(e)}")
            raise StorageError("Storage failure during submit_answer", {"action": "submit_answer"}) from e

        logger.info(
            f"Answer recorded: question={question_id}, user={user_id}, "
            f"correct={correct}, score={score} ({mode})"
        )
        self.notifier.invalidate(room.id, InvalidationTopic.QUIZ_RESULTS)

        return {
            "question_id": question_id,
            "score": score,
            "is_correct": correct,
            "time_left": clamped,
        }

    def _already_answered(self, question_id: UUID, user_id: UUID) -> AlreadyAnswered:
        logger.warning(f"Duplicate answer rejected: question={question_id}, user={user_id}")
        return AlreadyAnswered(
            "You already answered this question",
            {"question_id": str(question_id), "user_id": str(user_id)}
        )


# Global instance
answer_service = AnswerService()
