from __future__ import annotations

from typing import List

from .config import CARD_TEXT_LIMIT, MAX_REPLY_LENGTH
from .model import Opportunity, Profile, ResumeAnalysis


def truncate(text: str, limit: int = CARD_TEXT_LIMIT) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def opportunity_card(opportunity: Opportunity) -> str:
    lines = [
        f"📌 {opportunity.title}",
        truncate(opportunity.description),
        f"🏢 Company: {opportunity.company}",
        f"💼 Type: {opportunity.type}",
        f"📅 Deadline: {opportunity.deadline}",
    ]
    optional = [
        ("💰 Salary", opportunity.wage),
        ("🏠 Home Office", opportunity.home_office),
        ("📚 Formal Req.", opportunity.formal_requirements),
        ("🛠 Tech Req.", opportunity.technical_requirements),
        ("🎁 Benefits", truncate(opportunity.benefits)),
        ("📞 Contact", opportunity.contact_person),
    ]
    lines.extend(f"{label}: {value}" for label, value in optional if value and value.strip())
    return "\n".join(lines)


def opportunity_summary(opportunity: Opportunity) -> str:
    """Plain block used as model context."""
    return (
        f"🔹 Title: {opportunity.title}\n"
        f"🏢 Company: {opportunity.company}\n"
        f"💼 Type: {opportunity.type}\n"
        f"📅 Deadline: {opportunity.deadline}\n"
        f"🏠 Home Office: {opportunity.home_office}\n"
        f"💰 Salary: {opportunity.wage}\n"
        f"🛠 Tech Req: {opportunity.technical_requirements}\n"
        f"📚 Formal Req: {opportunity.formal_requirements}\n"
        f"📄 Description: {opportunity.description}\n"
        f"📞 Contact: {opportunity.contact_person}\n\n"
    )


def profile_card(profile: Profile) -> str:
    icons = {"Name": "🧑", "Email": "📧", "Skills": "🛠️", "Career Interest": "🎯"}
    lines = ["👤 Your Profile"]
    for label, value in profile.display_fields().items():
        lines.append(f"{icons[label]} {label}: {value}")
    return "\n".join(lines)


def analysis_message(analysis: ResumeAnalysis) -> str:
    lines = [f"📝 **CV Rating: {analysis.rating}/10**", "💡 **Suggestions to improve your CV:**"]
    lines.extend(f"- {tip}" for tip in analysis.suggestions)
    return "\n".join(lines)


def split_message(text: str, limit: int = MAX_REPLY_LENGTH) -> List[str]:
    if not text:
        return []
    return [text[i:i + limit] for i in range(0, len(text), limit)]
