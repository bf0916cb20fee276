"""
Results aggregation service

Rebuilds the leaderboard from the answer log on every call. Nothing is
cached, so the result always reflects the answers committed so far.
"""
import logging
from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from watchparty.config import settings
from watchparty.models import Answer, Question
from watchparty.services.room_service import room_service
from watchparty.services.scoring import ScoringMode, get_strategy
from watchparty.utils.errors import StorageError

logger = logging.getLogger(__name__)


class ResultsService:
    """Replays a room's answer log into ranked player scores"""

    def __init__(self, rooms=room_service):
        self.rooms = rooms

    def get_results(self, db: Session, room_id: UUID) -> Dict[str, Any]:
        """
        Compute the leaderboard for a room

        Ranking: total score desc, then correct answers desc, then join
        order (earliest first). The host is never ranked.

        Returns:
            Dictionary with room metadata and the ordered ``scores`` list,
            each entry carrying its 1-based rank
        """
        try:
            room = self.rooms.get_room(db, room_id)
            questions = db.query(Question).filter(
                Question.room_id == room.id,
                Question.published.is_(True)
            ).order_by(Question.question_order.asc()).all()

            question_ids = [q.id for q in questions]
            answers = db.query(Answer).filter(
                Answer.question_id.in_(question_ids)
            ).all() if question_ids else []

            players = self.rooms.get_members(db, room, include_host=False)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load results for room {room_id}: {str(e)}")
            raise StorageError("Storage failure during get_results", {"action": "get_results"}) from e

        mode = ScoringMode(room.scoring_mode or settings.DEFAULT_SCORING_MODE)

        answers_by_key = {(a.user_id, a.question_id): a for a in answers}
        scores = [
            self._score_player(player, questions, answers_by_key, mode)
            for player in players
        ]

        # players arrive in join order and sort() is stable, which settles full ties
        scores.sort(key=lambda s: (-s["score"], -s["correct_answers"]))
        for rank, entry in enumerate(scores, start=1):
            entry["rank"] = rank

        logger.info(
            f"Results computed for room {room.id}: {len(players)} players, "
            f"{len(questions)} questions, {len(answers)} answers"
        )

        return {
            "room_id": room.id,
            "status": room.status,
            "scoring_mode": mode.value,
            "total_questions": len(questions),
            "scores": scores,
        }

    def _score_player(
        self,
        player,
        questions: List[Question],
        answers_by_key: Dict[tuple, Answer],
        mode: ScoringMode
    ) -> Dict[str, Any]:
        correct_answers = 0
        answered = 0
        total = 0

        for question in questions:
            answer = answers_by_key.get((player.user_id, question.id))
            if answer is None:
                continue

            answered += 1
            correct = answer.option_index == question.correct_index
            if correct:
                correct_answers += 1
            total += self._answer_points(answer, question, correct, mode)

        return {
            "user_id": player.user_id,
            "user_name": player.user_name,
            "correct_answers": correct_answers,
            "answered_questions": answered,
            "total_questions": len(questions),
            "score": total,
        }

    def _answer_points(self, answer: Answer, question: Question, correct: bool, mode: ScoringMode) -> int:
        """Fixed mode always rebuilds from correctness; time-weighted uses the stored score"""
        if mode is ScoringMode.FIXED:
            return get_strategy(ScoringMode.FIXED).score(correct, question.duration_seconds, None)

        if answer.score is not None:
            return answer.score

        # an answer logged without a score falls back to the flat value
        return get_strategy(ScoringMode.FIXED).score(correct, question.duration_seconds, None)


# Global instance
results_service = ResultsService()
