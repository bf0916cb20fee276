"""
Movie proposal and voting models
"""
from sqlalchemy import Column, String, Integer, Text, Boolean, DateTime, ForeignKey, UniqueConstraint, Uuid
from watchparty.database import Base
from watchparty.utils.time_sync import utcnow
import uuid


class RoomMovie(Base):
    """
    Movies proposed in a room; accepted is None while pending
    """
    __tablename__ = "room_movies"
    __table_args__ = (
        UniqueConstraint("room_id", "movie_id", name="uq_room_movie"),
    )
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    room_id = Column(Uuid(as_uuid=True), ForeignKey("rooms.id"), nullable=False, index=True)
    movie_id = Column(String(50), nullable=False)  # external catalogue id
    title = Column(String(255), nullable=False)
    year = Column(Integer)
    poster_url = Column(String(500))
    overview = Column(Text)
    proposed_by = Column(Uuid(as_uuid=True))
    accepted = Column(Boolean)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    
    def __repr__(self):
        return f"<RoomMovie(id={self.id}, title={self.title}, accepted={self.accepted})>"


class MovieVote(Base):
    """
    One vote per (room_movie_id, user_id); re-voting overwrites
    """
    __tablename__ = "movie_votes"
    
    room_movie_id = Column(Uuid(as_uuid=True), ForeignKey("room_movies.id"), primary_key=True)
    user_id = Column(Uuid(as_uuid=True), primary_key=True)
    vote = Column(Boolean, nullable=False)
    voted_at = Column(DateTime, nullable=False, default=utcnow)
    
    def __repr__(self):
        return f"<MovieVote(room_movie_id={self.room_movie_id}, user_id={self.user_id}, vote={self.vote})>"
