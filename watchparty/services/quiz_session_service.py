"""
Quiz session state machine

Room status:      voting -> quiz -> finished, finished -> voting (reset)
Question status:  draft -> published (batch), answered via the answer log

Every transition re-reads the room and applies its write as a conditional
update on the expected source status, so a duplicate or concurrent host
action fails cleanly instead of applying twice. Each transition commits as
one unit and emits its invalidations only after the commit.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from watchparty.config import settings
from watchparty.database import atomic
from watchparty.models import Answer, Question, Room
from watchparty.models.room import ROOM_FINISHED, ROOM_QUIZ, ROOM_VOTING
from watchparty.services.movie_service import movie_service
from watchparty.services.room_service import room_service
from watchparty.services.scoring import ScoringMode
from watchparty.utils.errors import (
    AlreadyPublished,
    InvalidTransition,
    LimitExceeded,
    NoPlayers,
    NotFound,
    NotReady,
    ValidationError,
)
from watchparty.utils.notifier import InvalidationTopic, invalidation_notifier
from watchparty.utils.time_sync import utcnow
from watchparty.utils.validation import validate_question

logger = logging.getLogger(__name__)


class QuizSessionService:
    """Owns the legal transitions of a room and of its questions"""

    def __init__(self, notifier=invalidation_notifier, rooms=room_service, movies=movie_service):
        self.notifier = notifier
        self.rooms = rooms
        self.movies = movies

    def _require_status(self, room: Room, required: str, action: str) -> None:
        if room.status != required:
            logger.warning(
                f"{action} rejected for room {room.id}: status={room.status}, required={required}"
            )
            raise InvalidTransition(
                f"Cannot {action.replace('_', ' ')} while the room is {room.status}",
                {"action": action, "status": room.status, "required": required}
            )

    def _compare_and_set_status(
        self,
        db: Session,
        room: Room,
        source: str,
        target: str,
        action: str,
        **values
    ) -> None:
        """
        Move ``room`` from ``source`` to ``target`` only if it is still in
        ``source``. Must run inside a transaction.
        """
        updated = db.query(Room).filter(
            Room.id == room.id,
            Room.status == source
        ).update(
            {Room.status: target, **{getattr(Room, key): value for key, value in values.items()}},
            synchronize_session=False
        )

        if updated != 1:
            raise InvalidTransition(
                f"Room left {source} before {action.replace('_', ' ')} could apply",
                {"action": action, "required": source}
            )

    def _published_count(self, db: Session, room_id: UUID) -> int:
        return db.query(Question).filter(
            Question.room_id == room_id,
            Question.published.is_(True)
        ).count()

    def _emit(self, room_id: UUID, *topics: InvalidationTopic) -> None:
        for topic in topics:
            self.notifier.invalidate(room_id, topic)

    def start_quiz(
        self,
        db: Session,
        room_id: UUID,
        host_id: UUID,
        scoring_mode: Optional[str] = None
    ) -> Room:
        """
        voting -> quiz, fixing the scoring mode for the room's quiz

        Raises:
            InvalidTransition: room not in voting
            NotReady: no accepted movie yet
            ValidationError: unknown scoring mode
        """
        room = self.rooms.get_room(db, room_id)
        self.rooms.require_host(room, host_id, "start_quiz")
        self._require_status(room, ROOM_VOTING, "start_quiz")

        try:
            mode = ScoringMode(scoring_mode or settings.DEFAULT_SCORING_MODE)
        except ValueError:
            raise ValidationError(
                "Unknown scoring mode",
                {"field": "scoring_mode", "value": scoring_mode, "allowed": [m.value for m in ScoringMode]}
            )

        if not self.movies.has_accepted_movie(db, room.id):
            logger.warning(f"start_quiz rejected for room {room.id}: no accepted movie")
            raise NotReady("Select a movie before starting the quiz", {"action": "start_quiz"})

        with atomic(db, "start_quiz"):
            self._compare_and_set_status(
                db, room, ROOM_VOTING, ROOM_QUIZ, "start_quiz",
                scoring_mode=mode.value
            )

        logger.info(f"Room {room.id}: voting -> quiz (scoring={mode.value})")
        self._emit(room.id, InvalidationTopic.ROOM_STATUS)
        db.refresh(room)
        return room

    def publish_questions(self, db: Session, room_id: UUID, host_id: UUID) -> List[Question]:
        """
        Publish every draft question as one batch

        question_order follows creation order (0..N-1) and every question
        gets the same published_at.

        Raises:
            InvalidTransition: room not in quiz
            AlreadyPublished: the room's questions were already published
            ValidationError: no draft questions
            NoPlayers: nobody besides the host has joined
        """
        room = self.rooms.get_room(db, room_id)
        self.rooms.require_host(room, host_id, "publish_questions")
        self._require_status(room, ROOM_QUIZ, "publish_questions")

        published = self._published_count(db, room.id)
        if published:
            logger.warning(f"publish_questions rejected for room {room.id}: already published")
            raise AlreadyPublished(
                "Questions are already published",
                {"published": published}
            )

        drafts = db.query(Question).filter(
            Question.room_id == room.id,
            Question.published.is_(False)
        ).order_by(Question.created_at.asc(), Question.id.asc()).all()

        if not drafts:
            raise ValidationError("There are no draft questions to publish", {"drafts": 0})

        players = len(self.rooms.get_members(db, room, include_host=False))
        if players == 0:
            logger.warning(f"publish_questions rejected for room {room.id}: no players")
            raise NoPlayers("Nobody has joined the room yet", {"players": 0})

        published_at = utcnow()
        with atomic(db, "publish_questions"):
            for order, question in enumerate(drafts):
                updated = db.query(Question).filter(
                    Question.id == question.id,
                    Question.published.is_(False)
                ).update({
                    Question.published: True,
                    Question.question_order: order,
                    Question.published_at: published_at,
                }, synchronize_session=False)

                if updated != 1:
                    raise AlreadyPublished(
                        "Questions were published concurrently",
                        {"question_id": str(question.id)}
                    )

        logger.info(f"Room {room.id}: published {len(drafts)} questions")
        self._emit(room.id, InvalidationTopic.QUIZ_QUESTIONS)

        return self.list_questions(db, room.id, include_drafts=False)

    def finish_quiz(self, db: Session, room_id: UUID, host_id: UUID) -> Room:
        """
        quiz -> finished

        Raises:
            InvalidTransition: room not in quiz
            NotReady: questions were never published
        """
        room = self.rooms.get_room(db, room_id)
        self.rooms.require_host(room, host_id, "finish_quiz")
        self._require_status(room, ROOM_QUIZ, "finish_quiz")

        if not self._published_count(db, room.id):
            raise NotReady("Publish the questions before finishing the quiz", {"published": 0})

        with atomic(db, "finish_quiz"):
            self._compare_and_set_status(db, room, ROOM_QUIZ, ROOM_FINISHED, "finish_quiz")

        logger.info(f"Room {room.id}: quiz -> finished")
        self._emit(room.id, InvalidationTopic.ROOM_STATUS, InvalidationTopic.QUIZ_RESULTS)
        db.refresh(room)
        return room

    def reset_to_voting(self, db: Session, room_id: UUID, host_id: UUID) -> Room:
        """
        finished -> voting

        Deletes every question and answer of the room and clears the movie
        votes. Room code and members are kept. Irreversible.

        Raises:
            InvalidTransition: room not finished
        """
        room = self.rooms.get_room(db, room_id)
        self.rooms.require_host(room, host_id, "reset_to_voting")
        self._require_status(room, ROOM_FINISHED, "reset_to_voting")

        with atomic(db, "reset_to_voting"):
            self._compare_and_set_status(
                db, room, ROOM_FINISHED, ROOM_VOTING, "reset_to_voting",
                scoring_mode=None
            )

            question_ids = select(Question.id).where(Question.room_id == room.id)
            answers_deleted = db.query(Answer).filter(
                Answer.question_id.in_(question_ids)
            ).delete(synchronize_session=False)
            questions_deleted = db.query(Question).filter(
                Question.room_id == room.id
            ).delete(synchronize_session=False)

            self.movies.clear_votes(db, room.id)

        logger.info(
            f"Room {room.id}: finished -> voting "
            f"({questions_deleted} questions, {answers_deleted} answers deleted)"
        )
        self._emit(
            room.id,
            InvalidationTopic.ROOM_STATUS,
            InvalidationTopic.ROOM_MOVIES,
            InvalidationTopic.QUIZ_QUESTIONS,
            InvalidationTopic.QUIZ_RESULTS,
        )
        db.expire_all()
        return self.rooms.get_room(db, room.id)

    def check_authoring(self, db: Session, room: Room, host_id: UUID, action: str) -> int:
        """Common guards for adding drafts; returns the room's question count"""
        self.rooms.require_host(room, host_id, action)
        self._require_status(room, ROOM_QUIZ, action)

        if self._published_count(db, room.id):
            raise AlreadyPublished(
                "Questions are already published; no more can be added",
                {"action": action}
            )

        return db.query(Question).filter(Question.room_id == room.id).count()

    def _limit_exceeded(self, count: int, adding: int) -> LimitExceeded:
        return LimitExceeded(
            f"Maximum {settings.MAX_QUESTIONS_PER_ROOM} questions reached",
            {"count": count, "adding": adding, "max": settings.MAX_QUESTIONS_PER_ROOM}
        )

    def _new_draft(
        self,
        room: Room,
        text: str,
        options: List[str],
        correct_index: int,
        duration_seconds: Optional[int]
    ) -> Question:
        if duration_seconds is None:
            duration_seconds = settings.DEFAULT_DURATION_SECONDS
        text, options = validate_question(text, options, correct_index, duration_seconds)
        return Question(
            room_id=room.id,
            text=text,
            options=options,
            correct_index=correct_index,
            duration_seconds=duration_seconds,
            published=False,
        )

    def create_question(
        self,
        db: Session,
        room_id: UUID,
        host_id: UUID,
        text: str,
        options: List[str],
        correct_index: int,
        duration_seconds: Optional[int] = None
    ) -> Question:
        """
        Add one draft question

        Raises:
            InvalidTransition: room not in quiz
            AlreadyPublished: the batch is already published
            LimitExceeded: room already holds the maximum, or too few/many options
            ValidationError: malformed question
        """
        return self.create_questions(
            db, room_id, host_id,
            [{
                "text": text,
                "options": options,
                "correct_index": correct_index,
                "duration_seconds": duration_seconds,
            }]
        )[0]

    def create_questions(
        self,
        db: Session,
        room_id: UUID,
        host_id: UUID,
        candidates: List[Dict[str, Any]]
    ) -> List[Question]:
        """
        Add several drafts in one commit; all are validated first and the
        room cap is checked for the whole batch.
        """
        room = self.rooms.get_room(db, room_id)
        count = self.check_authoring(db, room, host_id, "create_question")

        if count + len(candidates) > settings.MAX_QUESTIONS_PER_ROOM:
            logger.warning(
                f"create_question rejected for room {room.id}: {count} + {len(candidates)} "
                f"> {settings.MAX_QUESTIONS_PER_ROOM}"
            )
            raise self._limit_exceeded(count, len(candidates))

        drafts = [
            self._new_draft(
                room,
                candidate.get("text"),
                candidate.get("options"),
                candidate.get("correct_index"),
                candidate.get("duration_seconds"),
            )
            for candidate in candidates
        ]

        with atomic(db, "create_question"):
            if self._published_count(db, room.id):
                logger.warning(f"create_question rejected for room {room.id}: published meanwhile")
                raise AlreadyPublished(
                    "Questions were published meanwhile; no more can be added",
                    {"action": "create_question"}
                )

            # distinct created_at values keep publish order equal to insertion order
            created_at = utcnow()
            for offset, draft in enumerate(drafts):
                draft.created_at = created_at + timedelta(microseconds=offset)
                db.add(draft)
            db.flush()

        logger.info(f"Room {room.id}: {len(drafts)} draft question(s) created")
        self._emit(room.id, InvalidationTopic.QUIZ_QUESTIONS)
        return drafts

    def delete_question(self, db: Session, question_id: UUID, host_id: UUID) -> None:
        """
        Delete a draft question

        Raises:
            NotFound: unknown question
            AlreadyPublished: question is published and therefore immutable
        """
        question = db.query(Question).filter(Question.id == question_id).first()
        if not question:
            raise NotFound("Question not found", {"resource": "question", "question_id": str(question_id)})

        room = self.rooms.get_room(db, question.room_id)
        self.rooms.require_host(room, host_id, "delete_question")

        with atomic(db, "delete_question"):
            deleted = db.query(Question).filter(
                Question.id == question.id,
                Question.published.is_(False)
            ).delete(synchronize_session=False)

            if deleted != 1:
                raise AlreadyPublished(
                    "Published questions cannot be deleted",
                    {"question_id": str(question_id)}
                )

        logger.info(f"Room {room.id}: draft question {question_id} deleted")
        self._emit(room.id, InvalidationTopic.QUIZ_QUESTIONS)

    def list_questions(self, db: Session, room_id: UUID, include_drafts: bool = False) -> List[Question]:
        """
        Published questions in play order, then drafts in creation order
        when ``include_drafts`` is set
        """
        room = self.rooms.get_room(db, room_id)

        published = db.query(Question).filter(
            Question.room_id == room.id,
            Question.published.is_(True)
        ).order_by(Question.question_order.asc()).all()

        if not include_drafts:
            return published

        drafts = db.query(Question).filter(
            Question.room_id == room.id,
            Question.published.is_(False)
        ).order_by(Question.created_at.asc(), Question.id.asc()).all()

        return published + drafts


# Global instance
quiz_session_service = QuizSessionService()
