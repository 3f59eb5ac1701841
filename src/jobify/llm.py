from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from .errors import DataError, TransportError

logger = logging.getLogger(__name__)

Message = Dict[str, str]

EXTRACTION_PROMPT = """
Analyze the following CV and return a JSON object with the following keys:
- name (full name)
- email (valid email address)
- skills (array of skills, that are used in the projects or jobs, for example: JAVA, C)
- positions (array of desired job roles like backend, frontend, devops, etc.)

CV:
--------------------
{cv_text}
"""

RATING_PROMPT = """
You are a career advisor. Read the following CV and evaluate its overall quality.
Return a JSON object with two fields:
- rating: a number between 1 and 10 (10 = excellent)
- feedback: a list of 2-5 suggestions to improve the CV.

CV:
--------------------
{cv_text}
"""

ADVISOR_PERSONA = (
    "You are an AI career assistant called Jobify. "
    "You help students find the best job opportunities from the opportunities provided. "
    "Always be helpful, friendly, and use natural, engaging language. "
    "Focus on career guidance, internships, CVs, and job matching based on their profile."
)


class ChatCompletionClient:
    """Single-shot chat completion over the OpenAI-compatible HTTP API."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.endpoint = base_url.rstrip("/") + "/chat/completions"
        self.timeout = timeout
        self._client = client

    async def complete(self, messages: List[Message]) -> str:
        payload = {
            "model": self.model,
            "messages": [{"role": m["role"], "content": m["content"]} for m in messages],
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        logger.debug("Sending %d messages to %s", len(messages), self.endpoint)
        try:
            if self._client is not None:
                response = await self._client.post(self.endpoint, json=payload, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.endpoint, json=payload, headers=headers)
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
        except httpx.HTTPError as exc:
            raise TransportError(f"chat completion failed: {exc}") from exc
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise TransportError(f"unexpected chat completion payload: {exc}") from exc
        return (content or "").strip()


def parse_json_reply(text: str) -> Dict[str, Any]:
    """Decode a JSON object from a model reply, tolerating a Markdown code fence around it."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    try:
        data = json.loads(cleaned.strip())
    except json.JSONDecodeError as exc:
        raise DataError(f"model reply is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise DataError(f"model reply is not a JSON object: {type(data).__name__}")
    return data


def user_message(content: str) -> List[Message]:
    return [{"role": "user", "content": content}]
