from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

UNKNOWN_DEADLINE = "unknown"


class RegistrationState(Enum):
    NONE = "none"
    AWAITING_EMAIL = "awaiting_email"
    AWAITING_NAME = "awaiting_name"


@dataclass(slots=True)
class Profile:
    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    skills: Optional[str] = None
    career_interest: Optional[str] = None
    cv_text: Optional[str] = None
    feedback: Optional[str] = None
    stars: Optional[int] = None

    def is_matchable(self) -> bool:
        return bool(self.skills) and bool(self.career_interest)

    def interest_text(self) -> str:
        return f"{self.skills or ''} {self.career_interest or ''}".strip()

    def display_fields(self) -> Dict[str, str]:
        labels = {
            "name": "Name",
            "email": "Email",
            "skills": "Skills",
            "career_interest": "Career Interest",
        }
        return {label: getattr(self, attr) for attr, label in labels.items() if getattr(self, attr)}


@dataclass(slots=True, eq=False)
class Opportunity:
    """A listing snapshot. Identity is the external opportunity id only."""

    id: str
    title: str
    company: str = "Unknown"
    type: str = "N/A"
    deadline: str = UNKNOWN_DEADLINE
    description: str = ""
    url: str = ""
    wage: str = ""
    home_office: str = ""
    benefits: str = ""
    formal_requirements: str = ""
    technical_requirements: str = ""
    contact_person: str = ""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Opportunity):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass(slots=True)
class ResumeAnalysis:
    name: Optional[str] = None
    email: Optional[str] = None
    skills: List[str] = field(default_factory=list)
    positions: List[str] = field(default_factory=list)
    rating: Optional[int] = None
    suggestions: List[str] = field(default_factory=list)

    def profile_fields(self) -> Dict[str, Optional[str]]:
        return {
            "name": self.name,
            "email": self.email,
            "skills": ", ".join(self.skills) if self.skills else None,
            "career_interest": ", ".join(self.positions) if self.positions else None,
        }
