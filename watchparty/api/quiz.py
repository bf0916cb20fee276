"""
Question authoring, answer submission and results endpoints
"""
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
import logging

from watchparty.database import get_db
from watchparty.schemas.room import HostAction
from watchparty.schemas.quiz import (
    QuestionCreate, QuestionGenerateRequest, PlayerQuestion, HostQuestion,
    AnswerSubmission, AnswerResult, QuizResults
)
from watchparty.services.quiz_session_service import quiz_session_service
from watchparty.services.room_service import room_service
from watchparty.services.answer_service import answer_service
from watchparty.services.results_service import results_service
from watchparty.services.generation_service import generation_service

router = APIRouter(prefix="/api", tags=["quiz"])
logger = logging.getLogger(__name__)


@router.get("/rooms/{room_id}/questions", response_model=List[PlayerQuestion])
async def list_published_questions(room_id: UUID, db: Session = Depends(get_db)):
    """Published questions in play order, without answers"""
    questions = quiz_session_service.list_questions(db, room_id, include_drafts=False)
    return [PlayerQuestion.model_validate(q) for q in questions]


@router.get("/rooms/{room_id}/questions/manage", response_model=List[HostQuestion])
async def list_all_questions(room_id: UUID, user_id: UUID, db: Session = Depends(get_db)):
    """Host view: published questions then drafts, with correct indexes"""
    room = room_service.get_room(db, room_id)
    room_service.require_host(room, user_id, "list_questions")
    questions = quiz_session_service.list_questions(db, room_id, include_drafts=True)
    return [HostQuestion.model_validate(q) for q in questions]


@router.post("/rooms/{room_id}/questions", response_model=HostQuestion, status_code=201)
async def create_question(room_id: UUID, request: QuestionCreate, db: Session = Depends(get_db)):
    """
    Add a draft question

    - 2 to 6 options, correct_index within them
    - duration 5 to 60 seconds (default 20)
    - at most 15 questions per room
    """
    question = quiz_session_service.create_question(
        db,
        room_id,
        request.user_id,
        request.text,
        request.options,
        request.correct_index,
        request.duration_seconds
    )
    return HostQuestion.model_validate(question)


@router.post("/rooms/{room_id}/questions/generate", response_model=List[HostQuestion], status_code=201)
async def generate_questions(
    room_id: UUID,
    request: QuestionGenerateRequest,
    db: Session = Depends(get_db)
):
    """Generate draft questions about the room's movie with Gemini"""
    questions = generation_service.generate_questions(
        db,
        room_id,
        request.user_id,
        count=request.count,
        locale=request.locale,
        movie_title=request.movie_title
    )
    return [HostQuestion.model_validate(q) for q in questions]


@router.post("/rooms/{room_id}/questions/publish", response_model=List[HostQuestion])
async def publish_questions(room_id: UUID, request: HostAction, db: Session = Depends(get_db)):
    """Publish all drafts at once, in creation order"""
    questions = quiz_session_service.publish_questions(db, room_id, request.user_id)
    return [HostQuestion.model_validate(q) for q in questions]


@router.delete("/questions/{question_id}", status_code=204)
async def delete_question(question_id: UUID, user_id: UUID, db: Session = Depends(get_db)):
    """Delete a draft question"""
    quiz_session_service.delete_question(db, question_id, user_id)
    return Response(status_code=204)


@router.post("/questions/{question_id}/answers", response_model=AnswerResult, status_code=201)
async def submit_answer(question_id: UUID, submission: AnswerSubmission, db: Session = Depends(get_db)):
    """
    Answer a published question

    One answer per player per question; a second attempt is rejected
    and the first answer stands.
    """
    result = answer_service.submit_answer(
        db,
        question_id,
        submission.user_id,
        submission.option_index,
        submission.time_left
    )
    return AnswerResult(**result)


@router.get("/rooms/{room_id}/results", response_model=QuizResults)
async def get_results(room_id: UUID, db: Session = Depends(get_db)):
    """Leaderboard rebuilt from the answer log"""
    return QuizResults(**results_service.get_results(db, room_id))
