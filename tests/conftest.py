"""
Shared fixtures: in-memory SQLite, a recording notifier and services wired to it
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["GEMINI_API_KEY"] = ""
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ["RATE_LIMIT_PER_HOUR"] = "1000000"

from datetime import timedelta

import pytest

from watchparty.database import Base, SessionLocal, engine
from watchparty.services.answer_service import AnswerService
from watchparty.services.movie_service import MovieService
from watchparty.services.quiz_session_service import QuizSessionService
from watchparty.services.results_service import ResultsService
from watchparty.services.room_service import RoomService


class RecordingNotifier:
    """Collects invalidations instead of publishing them"""

    def __init__(self):
        self.events = []

    def invalidate(self, room_id, topic):
        self.events.append((room_id, topic.value))

    def topics(self, room_id=None):
        return [t for r, t in self.events if room_id is None or r == room_id]

    def clear(self):
        self.events.clear()


@pytest.fixture
def db():
    import watchparty.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def other_session(db):
    """A second session on the same database, standing in for a concurrent request"""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def services(notifier):
    rooms = RoomService(notifier)
    movies = MovieService(notifier, rooms)

    class Services:
        pass

    s = Services()
    s.rooms = rooms
    s.movies = movies
    s.sessions = QuizSessionService(notifier, rooms, movies)
    s.answers = AnswerService(notifier, rooms)
    s.results = ResultsService(rooms)
    return s


@pytest.fixture
def make_room(db, services):
    """
    Build a room with a host and players.

    Players join one second apart so join order is unambiguous. With
    ``started`` the host selects a movie and the quiz begins.
    """

    def _make(players=("Ana", "Ben"), started=True, scoring_mode="time_weighted"):
        created = services.rooms.create_room(db, "Host")
        room_id, host_id = created["room_id"], created["user_id"]
        room = services.rooms.get_room(db, room_id)

        player_ids = []
        for name in players:
            joined = services.rooms.join_room(db, name, created["room_code"])
            player_ids.append(joined["user_id"])

        base = services.rooms.get_member(db, room_id, host_id).joined_at
        for offset, user_id in enumerate(player_ids, start=1):
            member = services.rooms.get_member(db, room_id, user_id)
            member.joined_at = base + timedelta(seconds=offset)
        db.commit()

        if started:
            proposal = services.movies.propose_movie(db, room_id, host_id, "603", "The Matrix", year=1999)
            services.movies.select_movie(db, room_id, proposal.id, host_id)
            services.sessions.start_quiz(db, room_id, host_id, scoring_mode)

        return {
            "room_id": room_id,
            "room_code": created["room_code"],
            "host_id": host_id,
            "player_ids": player_ids,
            "room": room,
        }

    return _make


@pytest.fixture
def add_questions(db, services):
    """Create and optionally publish questions; correct answer is always index 1"""

    def _add(ctx, count=3, duration=20, publish=True):
        for i in range(count):
            services.sessions.create_question(
                db,
                ctx["room_id"],
                ctx["host_id"],
                f"Question {i + 1}?",
                ["A", "B", "C", "D"],
                1,
                duration
            )
        if publish:
            return services.sessions.publish_questions(db, ctx["room_id"], ctx["host_id"])
        return services.sessions.list_questions(db, ctx["room_id"], include_drafts=True)

    return _add

