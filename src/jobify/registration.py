from __future__ import annotations

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Dict, List, Optional, Protocol, Sequence

from .config import MAX_SELECTIONS, POSITION_OPTIONS, SKILL_OPTIONS
from .errors import ValidationError
from .model import RegistrationState

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

ASK_EMAIL = "📧 Please enter your email address."
INVALID_EMAIL = "❗ Invalid email format, please retry."
ASK_NAME = "👤 Please enter your full name."
SETUP_FAILED = "❌ Failed to initialize profile setup."
SKILLS_SAVED = "✅ Skills saved."
NO_SKILLS = "❗ Please select at least one skill."
NO_POSITIONS = "❗ Please select at least one position."
POSITIONS_FAILED = "❌ Error saving positions. Please try again."
INVALID_SELECTION = f"❗ Please pick up to {MAX_SELECTIONS} options from the menu."


class ProfileWriter(Protocol):
    def upsert(self, user_id: str, **fields: Optional[str]) -> bool: ...


class Prompt(Enum):
    SKILLS = "select_skills"
    POSITIONS = "select_position"
    MAIN_MENU = "main_menu"


class Disposition(Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    IGNORED = "ignored"


@dataclass(slots=True)
class RegistrationOutcome:
    disposition: Disposition
    state: RegistrationState
    replies: List[str] = field(default_factory=list)
    next_prompt: Optional[Prompt] = None
    persisted: bool = True


def validate_email(text: str) -> str:
    email = text.strip()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError(f"not an email address: {email!r}")
    return email


class KeyedLock:
    """One asyncio lock per key, dropped once nobody holds or waits for it."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                self._locks.pop(key, None)


class RegistrationStateMachine:
    """Linear onboarding: email, then name, then the skills and positions prompts.

    All reads and writes of a user's state happen while holding that user's lock.
    Store failures are logged and reported on the outcome but never block the transition.
    """

    def __init__(self, profiles: ProfileWriter):
        self.profiles = profiles
        self._states: Dict[str, RegistrationState] = {}
        self._locks = KeyedLock()

    def state_of(self, user_id: str) -> RegistrationState:
        return self._states.get(user_id, RegistrationState.NONE)

    async def begin(self, user_id: str) -> RegistrationOutcome:
        async with self._locks.hold(user_id):
            if not await self._write(user_id):
                return RegistrationOutcome(Disposition.REJECTED, self.state_of(user_id), [SETUP_FAILED], persisted=False)
            self._states[user_id] = RegistrationState.AWAITING_EMAIL
            logger.info("Registration started for %s", user_id)
            return RegistrationOutcome(Disposition.ACCEPTED, RegistrationState.AWAITING_EMAIL, [ASK_EMAIL])

    async def reset(self, user_id: str) -> None:
        async with self._locks.hold(user_id):
            self._states.pop(user_id, None)

    async def handle_input(self, user_id: str, text: str) -> RegistrationOutcome:
        async with self._locks.hold(user_id):
            state = self.state_of(user_id)
            if state is RegistrationState.AWAITING_EMAIL:
                return await self._on_email(user_id, text)
            if state is RegistrationState.AWAITING_NAME:
                return await self._on_name(user_id, text)
            return RegistrationOutcome(Disposition.IGNORED, RegistrationState.NONE)

    async def select_skills(self, user_id: str, values: Sequence[str]) -> RegistrationOutcome:
        async with self._locks.hold(user_id):
            skills = _selection(values, SKILL_OPTIONS)
            if skills is None:
                return RegistrationOutcome(
                    Disposition.REJECTED, self.state_of(user_id), [INVALID_SELECTION], Prompt.SKILLS
                )
            if not skills:
                return RegistrationOutcome(Disposition.REJECTED, self.state_of(user_id), [NO_SKILLS], Prompt.SKILLS)
            persisted = await self._write(user_id, skills=skills)
            return RegistrationOutcome(
                Disposition.ACCEPTED, self.state_of(user_id), [SKILLS_SAVED], Prompt.POSITIONS, persisted
            )

    async def select_positions(self, user_id: str, values: Sequence[str]) -> RegistrationOutcome:
        async with self._locks.hold(user_id):
            positions = _selection(values, POSITION_OPTIONS)
            if positions is None:
                return RegistrationOutcome(
                    Disposition.REJECTED, self.state_of(user_id), [INVALID_SELECTION], Prompt.POSITIONS
                )
            if not positions:
                return RegistrationOutcome(
                    Disposition.REJECTED, self.state_of(user_id), [NO_POSITIONS], Prompt.POSITIONS
                )
            if not await self._write(user_id, career_interest=positions):
                return RegistrationOutcome(
                    Disposition.REJECTED, self.state_of(user_id), [POSITIONS_FAILED], Prompt.POSITIONS, False
                )
            return RegistrationOutcome(
                Disposition.ACCEPTED,
                self.state_of(user_id),
                [f"✅ Positions saved: {positions}"],
                Prompt.MAIN_MENU,
            )

    async def _on_email(self, user_id: str, text: str) -> RegistrationOutcome:
        try:
            email = validate_email(text)
        except ValidationError as exc:
            logger.debug("Email rejected for %s: %s", user_id, exc)
            return RegistrationOutcome(Disposition.REJECTED, RegistrationState.AWAITING_EMAIL, [INVALID_EMAIL])
        persisted = await self._write(user_id, email=email)
        self._states[user_id] = RegistrationState.AWAITING_NAME
        return RegistrationOutcome(
            Disposition.ACCEPTED, RegistrationState.AWAITING_NAME, [ASK_NAME], persisted=persisted
        )

    async def _on_name(self, user_id: str, text: str) -> RegistrationOutcome:
        name = text.strip()
        if not name:
            return RegistrationOutcome(Disposition.REJECTED, RegistrationState.AWAITING_NAME, [ASK_NAME])
        persisted = await self._write(user_id, name=name)
        self._states.pop(user_id, None)
        logger.info("Registration details collected for %s", user_id)
        return RegistrationOutcome(
            Disposition.ACCEPTED, RegistrationState.NONE, [], Prompt.SKILLS, persisted
        )

    async def _write(self, user_id: str, **fields: Optional[str]) -> bool:
        try:
            written = await asyncio.to_thread(self.profiles.upsert, user_id, **fields)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Profile write raised for %s: %s", user_id, exc)
            return False
        if not written:
            logger.warning("Profile write failed for %s (%s)", user_id, ", ".join(fields) or "seed")
        return written


def _selection(values: Sequence[str], options: Dict[str, str]) -> Optional[str]:
    """Comma-joined menu keys, or None when a value is off the menu or too many were picked."""
    chosen: List[str] = []
    for value in values:
        key = value.strip() if value else ""
        if key and key not in chosen:
            chosen.append(key)
    if len(chosen) > MAX_SELECTIONS or any(key not in options for key in chosen):
        return None
    return ", ".join(chosen)
