"""
Room, membership, movie voting and room transition endpoints
"""
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
import logging

from watchparty.database import get_db
from watchparty.models import Room
from watchparty.schemas.room import (
    RoomCreate, RoomJoin, RoomSession, RoomResponse, MemberResponse,
    HostAction, StartQuizRequest, MovieProposal, MovieVoteRequest,
    MovieSelect, MovieResponse
)
from watchparty.services.room_service import room_service
from watchparty.services.movie_service import movie_service
from watchparty.services.quiz_session_service import quiz_session_service

router = APIRouter(prefix="/api/rooms", tags=["rooms"])
logger = logging.getLogger(__name__)


def _room_response(db: Session, room: Room) -> RoomResponse:
    members = [
        MemberResponse(
            user_id=m.user_id,
            user_name=m.user_name,
            joined_at=m.joined_at,
            is_host=m.user_id == room.host_id
        )
        for m in room_service.get_members(db, room)
    ]
    return RoomResponse(
        id=room.id,
        code=room.code,
        host_id=room.host_id,
        status=room.status,
        scoring_mode=room.scoring_mode,
        created_at=room.created_at,
        members=members
    )


@router.post("/", response_model=RoomSession, status_code=201)
async def create_room(request: RoomCreate, db: Session = Depends(get_db)):
    """
    Create a room; the caller becomes its host

    The returned user_id identifies the host on every later call.
    """
    return RoomSession(**room_service.create_room(db, request.user_name))


@router.post("/join", response_model=RoomSession)
async def join_room(request: RoomJoin, db: Session = Depends(get_db)):
    """Join a room by its code (case-insensitive)"""
    return RoomSession(**room_service.join_room(db, request.user_name, request.room_code))


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room(room_id: UUID, db: Session = Depends(get_db)):
    """Room status and members in join order"""
    return _room_response(db, room_service.get_room(db, room_id))


@router.get("/{room_id}/movies", response_model=List[MovieResponse])
async def list_movies(room_id: UUID, db: Session = Depends(get_db)):
    """Proposed movies, newest first, with vote tallies"""
    return [MovieResponse(**m) for m in movie_service.list_proposals(db, room_id)]


@router.post("/{room_id}/movies", response_model=MovieResponse, status_code=201)
async def propose_movie(room_id: UUID, request: MovieProposal, db: Session = Depends(get_db)):
    """Propose a movie while the room is voting"""
    proposal = movie_service.propose_movie(
        db,
        room_id,
        request.user_id,
        request.movie_id,
        request.title,
        year=request.year,
        poster_url=request.poster_url,
        overview=request.overview
    )
    return MovieResponse.model_validate(proposal)


@router.post("/{room_id}/movies/{room_movie_id}/vote", status_code=204)
async def vote_for_movie(
    room_id: UUID,
    room_movie_id: UUID,
    request: MovieVoteRequest,
    db: Session = Depends(get_db)
):
    """Vote yes/no on a proposal; voting again replaces the vote"""
    movie_service.vote(db, room_id, room_movie_id, request.user_id, request.vote)
    return Response(status_code=204)


@router.post("/{room_id}/movies/select", response_model=MovieResponse)
async def select_movie(room_id: UUID, request: MovieSelect, db: Session = Depends(get_db)):
    """Host accepts one proposal"""
    proposal = movie_service.select_movie(db, room_id, request.room_movie_id, request.user_id)
    return MovieResponse.model_validate(proposal)


@router.post("/{room_id}/start", response_model=RoomResponse)
async def start_quiz(room_id: UUID, request: StartQuizRequest, db: Session = Depends(get_db)):
    """
    Move the room from voting to quiz

    Requires an accepted movie. The scoring mode is fixed from here on.
    """
    room = quiz_session_service.start_quiz(db, room_id, request.user_id, request.scoring_mode)
    return _room_response(db, room)


@router.post("/{room_id}/finish", response_model=RoomResponse)
async def finish_quiz(room_id: UUID, request: HostAction, db: Session = Depends(get_db)):
    """Move the room from quiz to finished; answers close"""
    room = quiz_session_service.finish_quiz(db, room_id, request.user_id)
    return _room_response(db, room)


@router.post("/{room_id}/reset", response_model=RoomResponse)
async def reset_room(room_id: UUID, request: HostAction, db: Session = Depends(get_db)):
    """
    Move a finished room back to voting

    Deletes all questions and answers and clears the movie votes. Cannot be undone.
    """
    room = quiz_session_service.reset_to_voting(db, room_id, request.user_id)
    return _room_response(db, room)
