"""
HTTP surface tests: a whole game night through the API
"""
import uuid

import pytest
from fastapi.testclient import TestClient

from watchparty.database import Base, engine
from watchparty.main import app
from watchparty.utils.rate_limiter import rate_limiter


@pytest.fixture
def client():
    import watchparty.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    rate_limiter.reset()
    with TestClient(app) as test_client:
        yield test_client
    Base.metadata.drop_all(bind=engine)


def create_room(client, host="Host"):
    response = client.post("/api/rooms/", json={"user_name": host})
    assert response.status_code == 201
    return response.json()


def join(client, code, name):
    response = client.post("/api/rooms/join", json={"user_name": name, "room_code": code})
    assert response.status_code == 200
    return response.json()


def ready_room(client, scoring_mode="time_weighted"):
    """Room with two players, an accepted movie and the quiz started"""
    host = create_room(client)
    room_id, host_id = host["room_id"], host["user_id"]
    ana = join(client, host["room_code"], "Ana")
    ben = join(client, host["room_code"].lower(), "Ben")

    movie = client.post(f"/api/rooms/{room_id}/movies", json={
        "user_id": ana["user_id"], "movie_id": "603", "title": "The Matrix", "year": 1999
    }).json()
    client.post(f"/api/rooms/{room_id}/movies/{movie['id']}/vote", json={"user_id": ben["user_id"], "vote": True})
    client.post(f"/api/rooms/{room_id}/movies/select", json={"user_id": host_id, "room_movie_id": movie["id"]})

    started = client.post(f"/api/rooms/{room_id}/start", json={"user_id": host_id, "scoring_mode": scoring_mode})
    assert started.status_code == 200
    return room_id, host_id, ana["user_id"], ben["user_id"]


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_room_lifecycle_and_members(client):
    host = create_room(client)
    join(client, host["room_code"], "Ana")

    room = client.get(f"/api/rooms/{host['room_id']}").json()

    assert room["status"] == "voting"
    assert room["code"] == host["room_code"]
    assert [(m["user_name"], m["is_host"]) for m in room["members"]] == [("Host", True), ("Ana", False)]


def test_movie_voting_tallies(client):
    host = create_room(client)
    room_id = host["room_id"]
    ana = join(client, host["room_code"], "Ana")

    movie = client.post(f"/api/rooms/{room_id}/movies", json={
        "user_id": host["user_id"], "movie_id": "27205", "title": "Inception"
    })
    assert movie.status_code == 201
    movie_id = movie.json()["id"]

    vote_url = f"/api/rooms/{room_id}/movies/{movie_id}/vote"
    assert client.post(vote_url, json={"user_id": ana["user_id"], "vote": False}).status_code == 204
    assert client.post(vote_url, json={"user_id": ana["user_id"], "vote": True}).status_code == 204
    client.post(vote_url, json={"user_id": host["user_id"], "vote": True})

    listed = client.get(f"/api/rooms/{room_id}/movies").json()

    assert [(m["title"], m["yes_votes"], m["no_votes"]) for m in listed] == [("Inception", 2, 0)]


def test_full_game_night(client):
    room_id, host_id, ana, ben = ready_room(client)

    for i in range(2):
        created = client.post(f"/api/rooms/{room_id}/questions", json={
            "user_id": host_id,
            "text": f"Question {i + 1}?",
            "options": ["Neo", "Trinity", "Morpheus"],
            "correct_index": 0,
            "duration_seconds": 20,
        })
        assert created.status_code == 201
        assert created.json()["published"] is False

    assert client.get(f"/api/rooms/{room_id}/questions").json() == []

    published = client.post(f"/api/rooms/{room_id}/questions/publish", json={"user_id": host_id})
    assert published.status_code == 200
    assert [q["question_order"] for q in published.json()] == [0, 1]

    player_view = client.get(f"/api/rooms/{room_id}/questions").json()
    assert [q["text"] for q in player_view] == ["Question 1?", "Question 2?"]
    assert "correct_index" not in player_view[0]
    q1, q2 = (q["id"] for q in player_view)

    first = client.post(f"/api/questions/{q1}/answers", json={"user_id": ana, "option_index": 0, "time_left": 20})
    assert first.status_code == 201
    assert first.json()["score"] == 1000

    duplicate = client.post(f"/api/questions/{q1}/answers", json={"user_id": ana, "option_index": 1, "time_left": 20})
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "already_answered"

    client.post(f"/api/questions/{q2}/answers", json={"user_id": ana, "option_index": 2, "time_left": 5})
    client.post(f"/api/questions/{q1}/answers", json={"user_id": ben, "option_index": 0, "time_left": 0})
    client.post(f"/api/questions/{q2}/answers", json={"user_id": ben, "option_index": 0, "time_left": 10})

    finished = client.post(f"/api/rooms/{room_id}/finish", json={"user_id": host_id})
    assert finished.json()["status"] == "finished"

    late = client.post(f"/api/questions/{q2}/answers", json={"user_id": ana, "option_index": 0, "time_left": 1})
    assert late.status_code == 409
    assert late.json()["error"] == "quiz_not_active"

    results = client.get(f"/api/rooms/{room_id}/results").json()
    assert results["total_questions"] == 2
    assert [(s["user_name"], s["score"], s["rank"]) for s in results["scores"]] == [
        ("Ben", 1250, 1),
        ("Ana", 1000, 2),
    ]

    reset = client.post(f"/api/rooms/{room_id}/reset", json={"user_id": host_id}).json()
    assert reset["status"] == "voting"
    assert reset["scoring_mode"] is None
    assert client.get(f"/api/rooms/{room_id}/questions").json() == []
    assert len(reset["members"]) == 3


def test_host_view_lists_drafts_with_answers(client):
    room_id, host_id, ana, _ = ready_room(client)
    client.post(f"/api/rooms/{room_id}/questions", json={
        "user_id": host_id, "text": "Who?", "options": ["A", "B"], "correct_index": 1
    })

    manage = client.get(f"/api/rooms/{room_id}/questions/manage", params={"user_id": host_id})
    assert manage.status_code == 200
    assert manage.json()[0]["correct_index"] == 1
    assert manage.json()[0]["duration_seconds"] == 20

    forbidden = client.get(f"/api/rooms/{room_id}/questions/manage", params={"user_id": ana})
    assert forbidden.status_code == 403
    assert forbidden.json()["error"] == "forbidden"


def test_delete_draft(client):
    room_id, host_id, _, _ = ready_room(client)
    question = client.post(f"/api/rooms/{room_id}/questions", json={
        "user_id": host_id, "text": "Who?", "options": ["A", "B"], "correct_index": 0
    }).json()

    response = client.delete(f"/api/questions/{question['id']}", params={"user_id": host_id})

    assert response.status_code == 204
    assert client.get(f"/api/rooms/{room_id}/questions/manage", params={"user_id": host_id}).json() == []


def test_unknown_room_is_404(client):
    response = client.get(f"/api/rooms/{uuid.uuid4()}")

    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "not_found"
    assert set(body) == {"error", "message", "detail"}


def test_unknown_room_code_is_404(client):
    response = client.post("/api/rooms/join", json={"user_name": "Ana", "room_code": "ZZZZZZ"})

    assert response.status_code == 404


def test_start_without_movie_is_409(client):
    host = create_room(client)

    response = client.post(f"/api/rooms/{host['room_id']}/start", json={"user_id": host["user_id"]})

    assert response.status_code == 409
    assert response.json()["error"] == "not_ready"


def test_invalid_question_is_422(client):
    room_id, host_id, _, _ = ready_room(client)

    response = client.post(f"/api/rooms/{room_id}/questions", json={
        "user_id": host_id, "text": "Who?", "options": ["only one"], "correct_index": 0
    })

    assert response.status_code == 422
    assert response.json()["error"] == "limit_exceeded"


def test_publish_without_players_is_409(client):
    host = create_room(client)
    room_id, host_id = host["room_id"], host["user_id"]
    movie = client.post(f"/api/rooms/{room_id}/movies", json={
        "user_id": host_id, "movie_id": "603", "title": "The Matrix"
    }).json()
    client.post(f"/api/rooms/{room_id}/movies/select", json={"user_id": host_id, "room_movie_id": movie["id"]})
    client.post(f"/api/rooms/{room_id}/start", json={"user_id": host_id})
    client.post(f"/api/rooms/{room_id}/questions", json={
        "user_id": host_id, "text": "Who?", "options": ["A", "B"], "correct_index": 0
    })

    response = client.post(f"/api/rooms/{room_id}/questions/publish", json={"user_id": host_id})

    assert response.status_code == 409
    assert response.json()["error"] == "no_players"


def test_generation_without_api_key_is_409(client):
    room_id, host_id, _, _ = ready_room(client)

    response = client.post(f"/api/rooms/{room_id}/questions/generate", json={"user_id": host_id, "count": 3})

    assert response.status_code == 409
    assert response.json()["error"] == "not_ready"
