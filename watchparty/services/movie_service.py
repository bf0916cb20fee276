"""
Movie proposal and voting service

The quiz core only consumes one fact from here: whether a room has an
accepted movie (and which one, for question generation).
"""
import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy import select
from sqlalchemy.orm import Session

from watchparty.database import atomic
from watchparty.models import MovieVote, Room, RoomMovie
from watchparty.models.room import ROOM_VOTING
from watchparty.services.room_service import room_service
from watchparty.utils.errors import Forbidden, InvalidTransition, NotFound, StorageError, ValidationError
from watchparty.utils.notifier import InvalidationTopic, invalidation_notifier
from watchparty.utils.time_sync import utcnow

logger = logging.getLogger(__name__)


class MovieService:
    """Service for proposing, voting on and selecting the room's movie"""

    def __init__(self, notifier=invalidation_notifier, rooms=room_service):
        self.notifier = notifier
        self.rooms = rooms

    def _require_voting(self, room: Room, action: str) -> None:
        if room.status != ROOM_VOTING:
            raise InvalidTransition(
                "Movies can only change while the room is voting",
                {"action": action, "status": room.status, "required": ROOM_VOTING}
            )

    def _require_member(self, db: Session, room: Room, user_id: UUID) -> None:
        if not self.rooms.get_member(db, room.id, user_id):
            raise Forbidden("Not a member of this room", {"room_id": str(room.id)})

    def propose_movie(
        self,
        db: Session,
        room_id: UUID,
        user_id: UUID,
        movie_id: str,
        title: str,
        year: Optional[int] = None,
        poster_url: Optional[str] = None,
        overview: Optional[str] = None
    ) -> RoomMovie:
        """
        Propose a movie for the room

        Raises:
            InvalidTransition: room is past voting
            ValidationError: movie already proposed in this room
        """
        room = self.rooms.get_room(db, room_id)
        self._require_voting(room, "propose_movie")
        self._require_member(db, room, user_id)

        if not (title or "").strip():
            raise ValidationError("Movie title is required", {"field": "title"})

        proposal = RoomMovie(
            room_id=room.id,
            movie_id=str(movie_id),
            title=title.strip(),
            year=year,
            poster_url=poster_url,
            overview=overview,
            proposed_by=user_id,
        )
        db.add(proposal)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValidationError(
                "Movie already proposed in this room",
                {"field": "movie_id", "movie_id": str(movie_id)}
            )
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Storage failure during propose_movie: {str(e)}")
            raise StorageError("Storage failure during propose_movie", {"action": "propose_movie"}) from e

        logger.info(f"Movie proposed in room {room.id}: {proposal.title}")
        self.notifier.invalidate(room.id, InvalidationTopic.ROOM_MOVIES)
        return proposal

    def vote(self, db: Session, room_id: UUID, room_movie_id: UUID, user_id: UUID, vote: bool) -> MovieVote:
        """Cast or change a vote; one vote per user per proposal"""
        room = self.rooms.get_room(db, room_id)
        proposal = db.query(RoomMovie).filter(
            RoomMovie.id == room_movie_id,
            RoomMovie.room_id == room.id
        ).first()
        if not proposal:
            raise NotFound("Movie proposal not found", {"resource": "room_movie", "id": str(room_movie_id)})

        self._require_voting(room, "vote")
        self._require_member(db, room, user_id)

        with atomic(db, "vote"):
            ballot = db.query(MovieVote).filter(
                MovieVote.room_movie_id == proposal.id,
                MovieVote.user_id == user_id
            ).first()
            if ballot:
                ballot.vote = vote
                ballot.voted_at = utcnow()
            else:
                ballot = MovieVote(room_movie_id=proposal.id, user_id=user_id, vote=vote)
                db.add(ballot)

        self.notifier.invalidate(room.id, InvalidationTopic.ROOM_MOVIES)
        return ballot

    def list_proposals(self, db: Session, room_id: UUID) -> List[Dict[str, Any]]:
        """Proposals newest first, with vote tallies"""
        room = self.rooms.get_room(db, room_id)
        proposals = db.query(RoomMovie).filter(
            RoomMovie.room_id == room.id
        ).order_by(RoomMovie.created_at.desc()).all()

        votes = db.query(MovieVote).filter(
            MovieVote.room_movie_id.in_([p.id for p in proposals])
        ).all() if proposals else []

        tallies = {p.id: {"yes": 0, "no": 0} for p in proposals}
        for ballot in votes:
            tallies[ballot.room_movie_id]["yes" if ballot.vote else "no"] += 1

        return [
            {
                "id": p.id,
                "movie_id": p.movie_id,
                "title": p.title,
                "year": p.year,
                "poster_url": p.poster_url,
                "overview": p.overview,
                "proposed_by": p.proposed_by,
                "accepted": p.accepted,
                "yes_votes": tallies[p.id]["yes"],
                "no_votes": tallies[p.id]["no"],
            }
            for p in proposals
        ]

    def select_movie(self, db: Session, room_id: UUID, room_movie_id: UUID, host_id: UUID) -> RoomMovie:
        """
        Host marks one proposal accepted and every other proposal rejected
        """
        room = self.rooms.get_room(db, room_id)
        self.rooms.require_host(room, host_id, "select_movie")
        self._require_voting(room, "select_movie")

        proposal = db.query(RoomMovie).filter(
            RoomMovie.id == room_movie_id,
            RoomMovie.room_id == room.id
        ).first()
        if not proposal:
            raise NotFound("Movie proposal not found", {"resource": "room_movie", "id": str(room_movie_id)})

        with atomic(db, "select_movie"):
            db.query(RoomMovie).filter(
                RoomMovie.room_id == room.id,
                RoomMovie.id != proposal.id
            ).update({RoomMovie.accepted: False}, synchronize_session=False)
            proposal.accepted = True

        logger.info(f"Movie selected in room {room.id}: {proposal.title}")
        self.notifier.invalidate(room.id, InvalidationTopic.ROOM_MOVIES)
        return proposal

    def winning_movie(self, db: Session, room_id: UUID) -> Optional[RoomMovie]:
        return db.query(RoomMovie).filter(
            RoomMovie.room_id == room_id,
            RoomMovie.accepted.is_(True)
        ).order_by(RoomMovie.created_at.asc()).first()

    def has_accepted_movie(self, db: Session, room_id: UUID) -> bool:
        return self.winning_movie(db, room_id) is not None

    def clear_votes(self, db: Session, room_id: UUID) -> None:
        """
        Clear acceptance flags and ballots for a room

        Runs inside the caller's transaction; does not commit.
        """
        proposal_ids = select(RoomMovie.id).where(RoomMovie.room_id == room_id)
        db.query(MovieVote).filter(
            MovieVote.room_movie_id.in_(proposal_ids)
        ).delete(synchronize_session=False)
        db.query(RoomMovie).filter(
            RoomMovie.room_id == room_id
        ).update({RoomMovie.accepted: False}, synchronize_session=False)


# Global instance
movie_service = MovieService()
