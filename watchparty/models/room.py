"""
Room and membership models
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid
from watchparty.database import Base
from watchparty.utils.time_sync import utcnow
import uuid


ROOM_VOTING = "voting"
ROOM_QUIZ = "quiz"
ROOM_FINISHED = "finished"

ROOM_STATUSES = (ROOM_VOTING, ROOM_QUIZ, ROOM_FINISHED)


class Room(Base):
    """
    Rooms table - one movie-night session

    status moves voting -> quiz -> finished, and finished -> voting on reset.
    scoring_mode is chosen when the quiz starts and kept for the room's quiz.
    """
    __tablename__ = "rooms"
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(10), unique=True, nullable=False, index=True)
    host_id = Column(Uuid(as_uuid=True), nullable=False)
    status = Column(String(20), nullable=False, default=ROOM_VOTING)
    scoring_mode = Column(String(20))
    created_at = Column(DateTime, nullable=False, default=utcnow)
        
    def __repr__(self):
        return f"<Room(id={self.id}, code={self.code}, status={self.status})>"


class RoomMember(Base):
    """
    Room members table - (room_id, user_id) is unique
    """
    __tablename__ = "room_members"
    
    room_id = Column(Uuid(as_uuid=True), ForeignKey("rooms.id"), primary_key=True)
    user_id = Column(Uuid(as_uuid=True), primary_key=True)
    user_name = Column(String(50), nullable=False)
    joined_at = Column(DateTime, nullable=False, default=utcnow)
        
    def __repr__(self):
        return f"<RoomMember(room_id={self.room_id}, user_id={self.user_id})>"
