"""
Pydantic schemas for questions, answers and results
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class QuestionCreate(BaseModel):
    """Request schema for a draft question; limits are checked by the service"""
    user_id: UUID
    text: str
    options: List[str]
    correct_index: int
    duration_seconds: Optional[int] = Field(None, description="Seconds to answer, default 20")


class QuestionGenerateRequest(BaseModel):
    """Request schema for AI question generation"""
    user_id: UUID
    count: int = Field(5, description="Number of questions to generate")
    locale: str = Field("en", max_length=10)
    movie_title: Optional[str] = Field(None, description="Defaults to the room's accepted movie")


class PlayerQuestion(BaseModel):
    """Question as players see it: no correct index"""
    id: UUID
    text: str
    options: List[str]
    duration_seconds: int
    question_order: Optional[int] = None
    published_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True


class HostQuestion(PlayerQuestion):
    """Question as the host sees it"""
    correct_index: int
    published: bool
    created_at: datetime


class AnswerSubmission(BaseModel):
    """Schema for answer submission"""
    user_id: UUID
    option_index: int
    time_left: Optional[float] = Field(None, description="Seconds left on the client timer")


class AnswerResult(BaseModel):
    """Response after an answer is recorded"""
    question_id: UUID
    score: int
    is_correct: bool
    time_left: float


class PlayerScore(BaseModel):
    """One leaderboard row"""
    rank: int
    user_id: UUID
    user_name: str
    correct_answers: int
    answered_questions: int
    total_questions: int
    score: int


class QuizResults(BaseModel):
    """Leaderboard for a room, best first"""
    room_id: UUID
    status: str
    scoring_mode: str
    total_questions: int
    scores: List[PlayerScore]
