"""
Gemini AI service for movie trivia generation
"""
import google.generativeai as genai
from watchparty.config import settings
from watchparty.utils.validation import MAX_QUESTION_LENGTH
import json
import logging
from typing import List, Dict, Any, Optional

logger = logging.getLogger(__name__)

OPTIONS_PER_QUESTION = 4

# Configure Gemini API
if settings.GEMINI_API_KEY:
    genai.configure(api_key=settings.GEMINI_API_KEY)


class GeminiService:
    """Service for Gemini trivia generation"""

    def __init__(self, model_name: str = None):
        self.model_name = model_name or settings.GEMINI_MODEL
        self._model = None

    @property
    def enabled(self) -> bool:
        return bool(settings.GEMINI_API_KEY) or self._model is not None

    @property
    def model(self):
        if self._model is None:
            self._model = genai.GenerativeModel(
                self.model_name,
                generation_config={"response_mime_type": "application/json"}
            )
        return self._model

    def generate_movie_questions(
        self,
        movie_title: str,
        count: int = 5,
        locale: str = "en",
        existing_questions: List[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Generate multiple-choice trivia questions about a movie

        Args:
            movie_title: Movie the questions are about
            count: Number of questions to ask for
            locale: Language of the questions
            existing_questions: Question texts the model must not repeat

        Returns:
            List of question dictionaries with text, options, correct_index
            and duration_seconds; empty when generation or parsing fails
        """
        existing_questions = existing_questions or []
        prompt = self._create_trivia_prompt(movie_title, count, locale, existing_questions)

        try:
            response = self.model.generate_content(prompt)
            questions = self._parse_questions(response.text)
        except Exception as e:
            # the SDK raises a wide range of transport and safety errors
            logger.error(f"Failed to generate questions for '{movie_title}': {str(e)}")
            return []

        if len(questions) != count:
            logger.warning(f"Expected {count} questions, got {len(questions)}")

        return questions[:count]

    def _create_trivia_prompt(
        self,
        movie_title: str,
        count: int,
        locale: str,
        existing_questions: List[str]
    ) -> str:
        """Create structured prompt for trivia generation"""

        avoid = ""
        if existing_questions:
            listed = "\n".join(f"- {q}" for q in existing_questions)
            avoid = f"""
IMPORTANT: Do NOT generate questions that are similar or identical to these existing questions:
{listed}
"""

        return f"""
Generate {count} trivia questions about the movie "{movie_title}".

Return ONLY a JSON array of objects with this structure:
{{
  "text": "The question text",
  "options": ["Option 1", "Option 2", "Option 3", "Option 4"],
  "correct_index": 0,
  "duration_seconds": 20
}}

Requirements:
- Language: {locale}
- Difficulty: Mixed (Easy to Medium)
- options: EXACTLY {OPTIONS_PER_QUESTION} options per question
- correct_index: a number between 0 and {OPTIONS_PER_QUESTION - 1}
- The correct answer must vary in position (don't always make it index 0)
{avoid}"""

    def _parse_questions(self, response_text: str) -> List[Dict[str, Any]]:
        """Parse and normalize Gemini's JSON response"""
        cleaned = response_text.strip()

        # Remove markdown code blocks
        if cleaned.startswith("```json"):
            cleaned = cleaned[7:-3].strip()
        elif cleaned.startswith("```"):
            cleaned = cleaned[3:-3].strip()

        try:
            raw = json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse questions JSON: {str(e)}")
            logger.error(f"Response text: {response_text[:500]}")
            return []

        if not isinstance(raw, list):
            logger.error("Response is not a list of questions")
            return []

        questions = []
        for item in raw:
            question = self._normalize_question(item)
            if question:
                questions.append(question)
        return questions

    def _normalize_question(self, item: Any) -> Optional[Dict[str, Any]]:
        """
        Trim the candidate and default its duration

        A candidate whose correct answer does not survive trimming is dropped
        rather than repaired, since any repair would mark the wrong option.
        """
        if not isinstance(item, dict):
            return None

        text = str(item.get("text") or "").strip()
        if not text or len(text) > MAX_QUESTION_LENGTH:
            return None

        options = [str(o).strip() for o in (item.get("options") or [])]
        if any(not option for option in options):
            return None
        options = options[:OPTIONS_PER_QUESTION]
        if len(options) < settings.MIN_OPTIONS:
            return None

        correct_index = item.get("correct_index")
        if isinstance(correct_index, bool) or not isinstance(correct_index, int):
            return None
        if not 0 <= correct_index < len(options):
            return None

        try:
            duration = int(item.get("duration_seconds") or settings.DEFAULT_DURATION_SECONDS)
        except (TypeError, ValueError):
            duration = settings.DEFAULT_DURATION_SECONDS
        duration = min(max(duration, settings.MIN_DURATION_SECONDS), settings.MAX_DURATION_SECONDS)

        return {
            "text": text,
            "options": options,
            "correct_index": correct_index,
            "duration_seconds": duration,
        }


# Global instance
gemini_service = GeminiService()
