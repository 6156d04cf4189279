"""
Habit challenge suggestions from the OpenAI chat completions API.
"""
import json
import logging
import os
from typing import Optional

from openai import OpenAI

logger = logging.getLogger(__name__)

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")


class ChallengeError(Exception):
    pass


class ChallengesNotConfigured(ChallengeError):
    pass


def build_prompt(habits: list, performance: dict) -> str:
    return (
        "Generate 5 personalized habit challenges.\n"
        f"Habits: {json.dumps(habits, default=str)}\n"
        f"Performance: {json.dumps(performance, default=str)}\n"
        'Return ONLY valid JSON: { "challenges": [...] }'
    )


def get_client() -> OpenAI:
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        logger.warning("OPENAI_API_KEY not set, challenges disabled")
        raise ChallengesNotConfigured("OPENAI_API_KEY is not set")
    return OpenAI(api_key=api_key)


def generate_challenges(habits: list, performance: dict, client: Optional[OpenAI] = None) -> dict:
    client = client or get_client()
    try:
        completion = client.chat.completions.create(
            model=OPENAI_MODEL,
            messages=[{"role": "user", "content": build_prompt(habits, performance)}],
            response_format={"type": "json_object"},
        )
        result = json.loads(completion.choices[0].message.content)
    except Exception as e:
        logger.error("Challenge generation failed: %s", e)
        raise ChallengeError(str(e)) from e
    if not isinstance(result, dict):
        raise ChallengeError("Expected a JSON object")
    return result
