"""
AI question generation

Asks Gemini for trivia about the room's movie and inserts the candidates
as drafts through the regular question authoring path, so generated and
hand-written questions are indistinguishable afterwards.
"""
import logging
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from watchparty.config import settings
from watchparty.models import Question
from watchparty.services.gemini_service import gemini_service
from watchparty.services.movie_service import movie_service
from watchparty.services.quiz_session_service import quiz_session_service
from watchparty.services.room_service import room_service
from watchparty.utils.cache import cache_service
from watchparty.utils.errors import LimitExceeded, NotReady, UpstreamError, ValidationError
from watchparty.utils.validation import validate_question

logger = logging.getLogger(__name__)


class GenerationService:
    """Generates draft questions for a room"""

    def __init__(
        self,
        gemini=gemini_service,
        cache=cache_service,
        sessions=quiz_session_service,
        movies=movie_service,
        rooms=room_service
    ):
        self.gemini = gemini
        self.cache = cache
        self.sessions = sessions
        self.movies = movies
        self.rooms = rooms

    def generate_questions(
        self,
        db: Session,
        room_id: UUID,
        host_id: UUID,
        count: int = 5,
        locale: str = "en",
        movie_title: Optional[str] = None
    ) -> List[Question]:
        """
        Generate ``count`` questions and store them as drafts

        Raises:
            ValidationError: count outside [1, MAX_GENERATED_QUESTIONS]
            Forbidden, InvalidTransition, AlreadyPublished: drafts cannot be added now
            NotReady: generation not configured, or no movie to ask about
            LimitExceeded: the batch would exceed the room's question cap
            UpstreamError: Gemini returned nothing usable
        """
        if not 1 <= count <= settings.MAX_GENERATED_QUESTIONS:
            raise ValidationError(
                f"Count must be between 1 and {settings.MAX_GENERATED_QUESTIONS}",
                {"field": "count", "value": count, "max": settings.MAX_GENERATED_QUESTIONS}
            )

        room = self.rooms.get_room(db, room_id)
        stored = self.sessions.check_authoring(db, room, host_id, "generate_questions")

        if not self.gemini.enabled:
            raise NotReady("Question generation is not configured", {"action": "generate_questions"})

        topic = (movie_title or "").strip()
        if not topic:
            movie = self.movies.winning_movie(db, room.id)
            if not movie:
                raise NotReady(
                    "No movie selected for this room. Provide a title or vote for a movie first.",
                    {"action": "generate_questions"}
                )
            topic = movie.title

        if stored + count > settings.MAX_QUESTIONS_PER_ROOM:
            raise LimitExceeded(
                f"Maximum {settings.MAX_QUESTIONS_PER_ROOM} questions reached",
                {"count": stored, "adding": count, "max": settings.MAX_QUESTIONS_PER_ROOM}
            )

        existing = [q.text for q in self.sessions.list_questions(db, room.id, include_drafts=True)]
        cache_key = self.cache.generate_cache_key(topic, count, locale, existing)
        candidates = self.cache.get(cache_key)
        if candidates is None:
            logger.info(f"Generating {count} questions about '{topic}' for room {room.id}")
            candidates = self.gemini.generate_movie_questions(topic, count, locale, existing)
            if candidates:
                self.cache.set(cache_key, candidates)

        seen = {text.strip().lower() for text in existing}
        fresh = []
        for candidate in candidates:
            if not self._is_valid(candidate):
                logger.warning(f"Skipping malformed generated question for room {room.id}: {candidate!r}")
                continue
            key = candidate["text"].strip().lower()
            if key not in seen:
                seen.add(key)
                fresh.append(candidate)

        if not fresh:
            raise UpstreamError("Failed to generate questions. Please try again.", {"topic": topic})

        return self.sessions.create_questions(db, room.id, host_id, fresh)

    def _is_valid(self, candidate: Any) -> bool:
        """Same checks create_questions applies, so one bad item cannot sink the batch"""
        if not isinstance(candidate, dict):
            return False
        duration = candidate.get("duration_seconds")
        if duration is None:
            duration = settings.DEFAULT_DURATION_SECONDS
        try:
            validate_question(
                candidate.get("text"),
                candidate.get("options"),
                candidate.get("correct_index"),
                duration
            )
        except (ValidationError, LimitExceeded):
            return False
        return True


# Global instance
generation_service = GenerationService()
