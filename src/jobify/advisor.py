from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Protocol

from .llm import ADVISOR_PERSONA
from .model import Opportunity, Profile
from .render import opportunity_summary, split_message

logger = logging.getLogger(__name__)

ADVISOR_UNAVAILABLE = "⚠️ The AI assistant is not configured."
ADVISOR_FAILED = "⚠️ The AI assistant could not answer right now: {error}"


class LanguageModel(Protocol):
    async def complete(self, messages: List[Dict[str, str]]) -> str: ...


class ProfileReader(Protocol):
    def get(self, user_id: str) -> Optional[Profile]: ...


class AssignmentReader(Protocol):
    def list_all(self, user_id: str) -> List[Opportunity]: ...


class CareerAdvisor:
    def __init__(self, profiles: ProfileReader, assignments: AssignmentReader, llm: Optional[LanguageModel]):
        self.profiles = profiles
        self.assignments = assignments
        self.llm = llm

    @property
    def available(self) -> bool:
        return self.llm is not None

    def build_messages(self, user_id: str, question: str) -> List[Dict[str, str]]:
        """Persona plus a user turn carrying the saved profile and assigned opportunities."""
        profile_info = ""
        opportunities_info = ""
        try:
            profile = self.profiles.get(user_id)
            if profile is not None and profile.display_fields():
                profile_info = "📄 Student Profile:\n" + "".join(
                    f"- {key}: {value}\n" for key, value in profile.display_fields().items()
                )
            opportunities = self.assignments.list_all(user_id)
            if opportunities:
                opportunities_info = "📌 Assigned Opportunities:\n" + "".join(
                    opportunity_summary(opportunity) for opportunity in opportunities
                )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not load context for %s: %s", user_id, exc)

        prompt = ""
        if profile_info:
            prompt += f"📄 Here is my student profile:\n{profile_info}\n"
        if opportunities_info:
            prompt += f"📌 These are the job opportunities assigned to me:\n{opportunities_info}\n"
        prompt += f"💬 My question is: {question}"
        return [
            {"role": "system", "content": ADVISOR_PERSONA},
            {"role": "user", "content": prompt},
        ]

    async def ask(self, user_id: str, question: str) -> List[str]:
        if self.llm is None:
            return [ADVISOR_UNAVAILABLE]
        messages = await asyncio.to_thread(self.build_messages, user_id, question)
        try:
            reply = await self.llm.complete(messages)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Advisor request failed for %s: %s", user_id, exc)
            return [ADVISOR_FAILED.format(error=exc)]
        return split_message(reply) or ["🤔 I don't have an answer for that yet."]
