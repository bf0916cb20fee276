"""
Pydantic schemas for rooms, members and movie voting
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class RoomCreate(BaseModel):
    """Request schema for creating a room"""
    user_name: str = Field(..., description="Host display name")


class RoomJoin(BaseModel):
    """Request schema for joining a room by code"""
    user_name: str = Field(..., description="Player display name")
    room_code: str = Field(..., description="Shareable room code, any case")


class RoomSession(BaseModel):
    """Identity handed back after create/join; the client keeps it"""
    room_id: UUID
    room_code: str
    user_id: UUID


class MemberResponse(BaseModel):
    user_id: UUID
    user_name: str
    joined_at: datetime
    is_host: bool = False
    
    class Config:
        from_attributes = True


class RoomResponse(BaseModel):
    """Room details with members in join order"""
    id: UUID
    code: str
    host_id: UUID
    status: str
    scoring_mode: Optional[str] = None
    created_at: datetime
    members: List[MemberResponse]


class HostAction(BaseModel):
    """Body for host-only actions"""
    user_id: UUID


class StartQuizRequest(HostAction):
    scoring_mode: Optional[str] = Field(None, description="fixed or time_weighted")


class MovieProposal(BaseModel):
    user_id: UUID
    movie_id: str = Field(..., max_length=50, description="External catalogue id")
    title: str = Field(..., max_length=255)
    year: Optional[int] = None
    poster_url: Optional[str] = Field(None, max_length=500)
    overview: Optional[str] = None


class MovieVoteRequest(BaseModel):
    user_id: UUID
    vote: bool


class MovieSelect(HostAction):
    room_movie_id: UUID


class MovieResponse(BaseModel):
    id: UUID
    movie_id: str
    title: str
    year: Optional[int] = None
    poster_url: Optional[str] = None
    overview: Optional[str] = None
    proposed_by: Optional[UUID] = None
    accepted: Optional[bool] = None
    yes_votes: int = 0
    no_votes: int = 0
    
    class Config:
        from_attributes = True
