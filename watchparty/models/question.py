"""
Question and answer models
"""
from sqlalchemy import Column, Integer, Float, Text, Boolean, DateTime, ForeignKey, JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from watchparty.database import Base
from watchparty.utils.time_sync import utcnow
import uuid


class Question(Base):
    """
    Questions table - drafts until the host publishes the room's batch

    question_order and published_at are assigned once, at publish time.
    """
    __tablename__ = "questions"
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    room_id = Column(Uuid(as_uuid=True), ForeignKey("rooms.id"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    options = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)  # ["A", "B", ...]
    correct_index = Column(Integer, nullable=False)
    duration_seconds = Column(Integer, nullable=False, default=20)
    published = Column(Boolean, nullable=False, default=False)
    question_order = Column(Integer)
    published_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    
    def __repr__(self):
        return f"<Question(id={self.id}, room_id={self.room_id}, published={self.published})>"


class Answer(Base):
    """
    Answers table - append-only log, one row per (question_id, user_id)
    """
    __tablename__ = "answers"
    
    question_id = Column(Uuid(as_uuid=True), ForeignKey("questions.id"), primary_key=True)
    user_id = Column(Uuid(as_uuid=True), primary_key=True)
    option_index = Column(Integer, nullable=False)
    is_correct = Column(Boolean, nullable=False)
    score = Column(Integer)
    time_left = Column(Float)  # clamped value the score was computed from
    answered_at = Column(DateTime, nullable=False, default=utcnow)
    
    def __repr__(self):
        return f"<Answer(question_id={self.question_id}, user_id={self.user_id}, score={self.score})>"
