"""
Database models package
"""
from watchparty.models.room import Room, RoomMember
from watchparty.models.movie import RoomMovie, MovieVote
from watchparty.models.question import Question, Answer

__all__ = ["Room", "RoomMember", "RoomMovie", "MovieVote", "Question", "Answer"]
