"""Video idea generation with Gemini.

The generator receives a batch of comments (each with its video title) and
asks the model for a JSON array of video ideas. The raw response is parsed
and normalised into plain dicts before anything touches the database.
"""
import json
import re
from typing import Any, Dict, List, Optional

import structlog
from google import genai
from google.genai import types

from backend.config import get_settings

logger = structlog.get_logger(__name__)

PROMPT_TEMPLATE = """You are a creative content creator generating video ideas based on YouTube comments.
Given a set of YouTube comments, generate creative video ideas, a short description for each idea, and identify potential research URLs related to the idea. Each idea should be scored from 0 to 10, representing how good the idea is (10 = best).
Structure the output as a JSON array of objects. Each object must have the following properties:
 - video_id: The video ID the comment came from.
 - comment_id: The comment ID.
 - score: (number) A score between 0 and 10 representing the quality of the idea.
 - description: (string) A short, engaging description of the video idea.
 - video_title: (string) The original title of the video that the comment came from.
 - research: (array) An array of objects of the form {{"url": "..."}} that are relevant for researching this video idea.

Here are the comments: {comments}

IMPORTANT:
1. Always return the output in valid JSON format. Do not include any other text outside the JSON array.
2. Only return a maximum of {max_ideas} ideas.
3. Ensure the video_id and comment_id exactly match the input data.
4. The score must be a number between 0 and 10.
5. Do not include any preamble or explanation text. Only return the JSON.
"""

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class IdeaGenerationError(Exception):
    pass


def build_prompt(comments: List[Dict[str, str]], max_ideas: int = 5) -> str:
    return PROMPT_TEMPLATE.format(comments=json.dumps(comments), max_ideas=max_ideas)


def parse_ideas(text: str) -> List[Dict[str, Any]]:
    """Parse the model output into a list of idea objects.

    Gemini sometimes wraps JSON in a markdown fence even when asked not to,
    so a single surrounding fence is stripped first.
    """
    cleaned = (text or "").strip()
    match = _FENCE_RE.match(cleaned)
    if match:
        cleaned = match.group(1)

    try:
        ideas = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error("Error parsing Gemini response", error=str(e), raw_response=text)
        raise IdeaGenerationError("Failed to parse Gemini response as JSON.") from e

    if not isinstance(ideas, list) or not all(isinstance(idea, dict) for idea in ideas):
        logger.error("Gemini response is not a JSON array of objects", raw_response=text)
        raise IdeaGenerationError("Failed to parse Gemini response as JSON.")

    return ideas


def _research_urls(research: Any) -> List[str]:
    if not isinstance(research, list):
        return []
    urls = []
    for item in research:
        if isinstance(item, dict) and isinstance(item.get("url"), str):
            urls.append(item["url"])
        elif isinstance(item, str):
            urls.append(item)
    return urls


def _score(value: Any) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0
    return min(max(score, 0), 10)


def normalize_ideas(
    ideas: List[Dict[str, Any]],
    comments: List[Dict[str, str]],
    max_ideas: int = 5,
) -> List[Dict[str, Any]]:
    """Keep ideas that point at a comment from the batch, capped at max_ideas."""
    known = {(c["video_id"], c["comment_id"]) for c in comments}
    normalized = []

    for idea in ideas:
        key = (str(idea.get("video_id")), str(idea.get("comment_id")))
        if key not in known:
            logger.warning("Dropping idea for unknown comment", video_id=key[0], comment_id=key[1])
            continue

        normalized.append({
            "video_id": key[0],
            "comment_id": key[1],
            "score": _score(idea.get("score")),
            "video_title": str(idea.get("video_title") or ""),
            "description": str(idea.get("description") or ""),
            "research": _research_urls(idea.get("research")),
        })

        if len(normalized) >= max_ideas:
            break

    return normalized


class GeminiIdeaGenerator:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, max_ideas: Optional[int] = None):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.max_ideas = max_ideas or settings.max_ideas
        self._client = None

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def generate(self, comments: List[Dict[str, str]]) -> List[Dict[str, Any]]:
        if not self.api_key:
            logger.error("GEMINI_API_KEY is not set. Cannot generate ideas with Gemini.")
            raise IdeaGenerationError("GEMINI_API_KEY is not set.")

        prompt = build_prompt(comments, self.max_ideas)

        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(response_mime_type="application/json"),
            )
        except Exception as e:
            logger.error("Error generating ideas with Gemini", error=str(e))
            raise IdeaGenerationError(f"Gemini request failed: {e}") from e

        ideas = normalize_ideas(parse_ideas(response.text), comments, self.max_ideas)
        logger.info("Ideas generated successfully", count=len(ideas), model=self.model)
        return ideas
