"""
Question generation tests with Gemini stubbed out
"""
import json
from types import SimpleNamespace

import pytest

from watchparty.models import Question
from watchparty.services.gemini_service import GeminiService
from watchparty.services.generation_service import GenerationService
from watchparty.utils.cache import CacheService
from watchparty.utils.errors import (
    AlreadyPublished,
    Forbidden,
    LimitExceeded,
    NotReady,
    UpstreamError,
    ValidationError,
)


def trivia(text, correct_index=0):
    return {"text": text, "options": ["A", "B", "C", "D"], "correct_index": correct_index, "duration_seconds": 20}


class StubGemini:
    enabled = True

    def __init__(self, questions):
        self.questions = questions
        self.calls = []

    def generate_movie_questions(self, movie_title, count=5, locale="en", existing_questions=None):
        self.calls.append((movie_title, count, locale, list(existing_questions or [])))
        return self.questions


class DictCache(CacheService):
    """CacheService backed by a dict instead of Redis"""

    def __init__(self):
        super().__init__(None)
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ttl=None):
        self.store[key] = value
        return True


@pytest.fixture
def generator(services):
    def _build(questions):
        gemini = StubGemini(questions)
        service = GenerationService(
            gemini=gemini,
            cache=DictCache(),
            sessions=services.sessions,
            movies=services.movies,
            rooms=services.rooms,
        )
        return service, gemini

    return _build


class TestGenerateQuestions:

    def test_generated_questions_become_drafts(self, db, services, make_room, generator):
        ctx = make_room()
        service, gemini = generator([trivia("Who plays Neo?", 2), trivia("What color is the pill?", 1)])

        drafts = service.generate_questions(db, ctx["room_id"], ctx["host_id"], count=2)

        assert [q.text for q in drafts] == ["Who plays Neo?", "What color is the pill?"]
        assert all(q.published is False for q in drafts)
        assert gemini.calls[0][:3] == ("The Matrix", 2, "en")

    def test_explicit_title_overrides_room_movie(self, db, make_room, generator):
        ctx = make_room()
        service, gemini = generator([trivia("Who directed Alien?")])

        service.generate_questions(db, ctx["room_id"], ctx["host_id"], count=1, movie_title="Alien")

        assert gemini.calls[0][0] == "Alien"

    def test_duplicates_of_existing_questions_are_dropped(self, db, make_room, add_questions, generator):
        ctx = make_room()
        add_questions(ctx, count=1, publish=False)
        service, gemini = generator([trivia("question 1?"), trivia("Brand new?"), trivia("BRAND NEW?")])

        drafts = service.generate_questions(db, ctx["room_id"], ctx["host_id"], count=3)

        assert [q.text for q in drafts] == ["Brand new?"]
        assert gemini.calls[0][3] == ["Question 1?"]

    def test_second_identical_request_is_served_from_cache(self, db, make_room, generator):
        ctx = make_room()
        service, gemini = generator([trivia("Who plays Neo?")])
        cached_key = service.cache.generate_cache_key("The Matrix", 1, "en", [])
        service.cache.set(cached_key, [trivia("Cached question?")])

        drafts = service.generate_questions(db, ctx["room_id"], ctx["host_id"], count=1)

        assert [q.text for q in drafts] == ["Cached question?"]
        assert gemini.calls == []

    def test_malformed_candidates_are_skipped(self, db, make_room, generator):
        ctx = make_room()
        blank_option = {"text": "Blank?", "options": ["a", "", "c", "d"], "correct_index": 0}
        long_text = trivia("x" * 501)
        service, _ = generator([blank_option, trivia("Who plays Neo?", 2), long_text, "junk"])

        drafts = service.generate_questions(db, ctx["room_id"], ctx["host_id"], count=4)

        assert [q.text for q in drafts] == ["Who plays Neo?"]
        assert db.query(Question).count() == 1

    def test_only_malformed_candidates_is_upstream_error(self, db, make_room, generator):
        ctx = make_room()
        service, _ = generator([{"text": "Blank?", "options": ["", "b"], "correct_index": 0}])

        with pytest.raises(UpstreamError):
            service.generate_questions(db, ctx["room_id"], ctx["host_id"], count=1)

        assert db.query(Question).count() == 0

    def test_empty_generation_is_upstream_error(self, db, make_room, generator):
        ctx = make_room()
        service, _ = generator([])

        with pytest.raises(UpstreamError):
            service.generate_questions(db, ctx["room_id"], ctx["host_id"], count=3)

    @pytest.mark.parametrize("count", [0, 11])
    def test_count_bounds(self, db, make_room, generator, count):
        ctx = make_room()
        service, gemini = generator([trivia("Q?")])

        with pytest.raises(ValidationError):
            service.generate_questions(db, ctx["room_id"], ctx["host_id"], count=count)
        assert gemini.calls == []

    def test_batch_over_room_cap(self, db, make_room, add_questions, generator):
        ctx = make_room()
        add_questions(ctx, count=12, publish=False)
        service, gemini = generator([trivia(f"Q{i}?") for i in range(5)])

        with pytest.raises(LimitExceeded):
            service.generate_questions(db, ctx["room_id"], ctx["host_id"], count=5)
        assert gemini.calls == []

    def test_player_cannot_generate(self, db, make_room, generator):
        ctx = make_room()
        service, _ = generator([trivia("Q?")])

        with pytest.raises(Forbidden):
            service.generate_questions(db, ctx["room_id"], ctx["player_ids"][0], count=1)

    def test_not_after_publish(self, db, make_room, add_questions, generator):
        ctx = make_room()
        add_questions(ctx, count=1)
        service, gemini = generator([trivia("Q?")])

        with pytest.raises(AlreadyPublished):
            service.generate_questions(db, ctx["room_id"], ctx["host_id"], count=1)
        assert gemini.calls == []

    def test_disabled_generation(self, db, make_room, generator):
        ctx = make_room()
        service, gemini = generator([trivia("Q?")])
        gemini.enabled = False

        with pytest.raises(NotReady):
            service.generate_questions(db, ctx["room_id"], ctx["host_id"], count=1)


class TestGeminiParsing:

    def setup_method(self):
        self.service = GeminiService(model_name="test-model")

    def test_plain_json_array(self):
        parsed = self.service._parse_questions(json.dumps([trivia("Who?", 3)]))

        assert parsed == [trivia("Who?", 3)]

    def test_code_fences_are_stripped(self):
        text = "```json\n" + json.dumps([trivia("Who?")]) + "\n```"

        assert self.service._parse_questions(text)[0]["text"] == "Who?"

    def test_invalid_json_yields_nothing(self):
        assert self.service._parse_questions("Sorry, I can't help with that.") == []

    def test_non_list_yields_nothing(self):
        assert self.service._parse_questions(json.dumps(trivia("Who?"))) == []

    def test_items_are_normalized(self):
        raw = [
            {"text": "  Who?  ", "options": ["a", "b", "c", "d", "e"], "correct_index": 2, "duration_seconds": 500},
            {"text": "Where?", "options": [" x ", "y"], "correct_index": 1},
            {"text": "", "options": ["a", "b"], "correct_index": 0},
            {"text": "One option?", "options": ["a"], "correct_index": 0},
            "not a question",
        ]

        parsed = self.service._parse_questions(json.dumps(raw))

        assert parsed == [
            {"text": "Who?", "options": ["a", "b", "c", "d"], "correct_index": 2, "duration_seconds": 60},
            {"text": "Where?", "options": ["x", "y"], "correct_index": 1, "duration_seconds": 20},
        ]

    def test_correct_answer_trimmed_away_drops_the_item(self):
        raw = [{"text": "Who?", "options": ["a", "b", "c", "d", "e", "f"], "correct_index": 5}]

        assert self.service._parse_questions(json.dumps(raw)) == []

    @pytest.mark.parametrize("correct_index", [-1, 4, "1", 1.0, True, None])
    def test_unusable_correct_index_drops_the_item(self, correct_index):
        raw = [{"text": "Who?", "options": ["a", "b", "c", "d"], "correct_index": correct_index}]

        assert self.service._parse_questions(json.dumps(raw)) == []

    def test_empty_option_drops_only_that_item(self):
        raw = [
            {"text": "Blank?", "options": ["a", "  ", "c", "d"], "correct_index": 0},
            trivia("Fine?", 1),
        ]

        parsed = self.service._parse_questions(json.dumps(raw))

        assert [q["text"] for q in parsed] == ["Fine?"]

    def test_overlong_text_drops_the_item(self):
        raw = [trivia("x" * 501), trivia("y" * 500)]

        parsed = self.service._parse_questions(json.dumps(raw))

        assert [len(q["text"]) for q in parsed] == [500]

    def test_model_failure_returns_empty_list(self):
        def explode(prompt):
            raise RuntimeError("quota exceeded")

        self.service._model = SimpleNamespace(generate_content=explode)

        assert self.service.generate_movie_questions("The Matrix", 3) == []

    def test_generation_trims_to_requested_count(self):
        payload = json.dumps([trivia(f"Q{i}?") for i in range(4)])
        self.service._model = SimpleNamespace(generate_content=lambda prompt: SimpleNamespace(text=payload))

        questions = self.service.generate_movie_questions("The Matrix", 2)

        assert [q["text"] for q in questions] == ["Q0?", "Q1?"]
        assert self.service.enabled is True

    def test_prompt_lists_existing_questions(self):
        prompt = self.service._create_trivia_prompt("The Matrix", 3, "es", ["Who plays Neo?"])

        assert "The Matrix" in prompt
        assert "Language: es" in prompt
        assert "- Who plays Neo?" in prompt
