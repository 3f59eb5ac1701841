from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence

from .advisor import ADVISOR_UNAVAILABLE, CareerAdvisor
from .aggregator import OpportunityAggregator
from .ingestion import Attachment, ResumeIngestionPipeline
from .model import Opportunity
from .persistence import AssignmentStore, FeedbackStore, ProfileStore, delete_profile
from .registration import Disposition, Prompt, RegistrationOutcome, RegistrationStateMachine
from .render import opportunity_card, profile_card

logger = logging.getLogger(__name__)

GREETING = "👋 **JOBIFY Bot is now online and ready to help!**"
MAIN_MENU_TEXT = "💼 What would you like to do next?"
PROFILE_SAVED_TEXT = "✅ Your profile has been saved! What would you like to do next?"
GENERIC_ERROR = "❌ Something went wrong. Please try again."
ASK_HELP = """🤖 **Welcome to Jobify - your personal AI career assistant!**

You can ask me questions using `!ask <your question>`.
I'll use your saved **profile** and **matched opportunities** to guide you.

✅ Make sure you've already:
• Completed your profile (Name, Email, Skills, Career Interest)
• Clicked the **🎯 Match Me** button to find suitable job offers

Once you've done that, I can:
• 🔍 Recommend the best-fit job from your saved opportunities
• 🧠 Suggest skills to improve based on your goals
• 📄 Help you improve your CV and job applications
• ❓ Answer anything about internships, tech roles, or career tips

_💡 Example:_
`!ask Which opportunity suits my backend experience more?`"""


class Components(Enum):
    MAIN_MENU = "main_menu"
    CV_CHOICE = "cv_choice"
    SKILLS_MENU = "select_skills"
    POSITIONS_MENU = "select_position"
    STAR_RATING = "star_rating"
    FEEDBACK_FORM = "feedback_modal"
    APPLY_LINK = "apply_link"


@dataclass(slots=True)
class Reply:
    text: str = ""
    components: Optional[Components] = None
    card: Optional[Opportunity] = None

    @property
    def link(self) -> Optional[str]:
        if self.components is Components.APPLY_LINK and self.card is not None:
            return self.card.url
        return None


def main_menu(text: str = MAIN_MENU_TEXT) -> Reply:
    return Reply(text, Components.MAIN_MENU)


_PROMPT_REPLIES = {
    Prompt.SKILLS: lambda: Reply("💻 What are your primary skills or technologies?", Components.SKILLS_MENU),
    Prompt.POSITIONS: lambda: Reply("🧾 Which type of position are you seeking?", Components.POSITIONS_MENU),
    Prompt.MAIN_MENU: lambda: main_menu(PROFILE_SAVED_TEXT),
}


class ConversationDispatcher:
    """Routes inbound chat events to the assistant's components and returns the replies to send."""

    def __init__(
        self,
        profiles: ProfileStore,
        assignments: AssignmentStore,
        feedback: FeedbackStore,
        registration: RegistrationStateMachine,
        aggregator: OpportunityAggregator,
        pipeline: ResumeIngestionPipeline,
        advisor: CareerAdvisor,
    ):
        self.profiles = profiles
        self.assignments = assignments
        self.feedback = feedback
        self.registration = registration
        self.aggregator = aggregator
        self.pipeline = pipeline
        self.advisor = advisor

    async def on_message(self, user_id: str, text: str, attachment: Optional[Attachment] = None) -> List[Reply]:
        return await self._guard(user_id, lambda: self._message(user_id, text.strip(), attachment))

    async def on_button(self, user_id: str, component_id: str) -> List[Reply]:
        return await self._guard(user_id, lambda: self._button(user_id, component_id))

    async def on_select(self, user_id: str, menu_id: str, values: Sequence[str]) -> List[Reply]:
        return await self._guard(user_id, lambda: self._select(user_id, menu_id, values))

    async def on_modal(self, user_id: str, modal_id: str, value: str) -> List[Reply]:
        return await self._guard(user_id, lambda: self._modal(user_id, modal_id, value))

    async def _guard(self, user_id: str, handler: Callable[[], Awaitable[List[Reply]]]) -> List[Reply]:
        try:
            return await handler()
        except Exception:  # noqa: BLE001
            logger.exception("Unhandled failure while serving %s", user_id)
            return [Reply(GENERIC_ERROR), main_menu()]

    async def _message(self, user_id: str, text: str, attachment: Optional[Attachment]) -> List[Reply]:
        if attachment is not None:
            outcome = await self.pipeline.ingest(user_id, attachment)
            replies = [Reply(message) for message in outcome.messages]
            if outcome.show_main_menu:
                replies.append(main_menu())
            return replies
        command, _, rest = text.partition(" ")
        command = command.lower()
        if text.lower() == "!status":
            return [Reply("✅ Bot is operational.")]
        if text.lower() == "!fetch":
            return await self.match(user_id, with_menu=False)
        if command == "!ask":
            question = rest.strip()
            if not question:
                return [Reply("❗ Usage: `!ask <your question>`")]
            if not self.advisor.available:
                return [Reply(ADVISOR_UNAVAILABLE)]
            return [Reply(chunk) for chunk in await self.advisor.ask(user_id, question)]
        outcome = await self.registration.handle_input(user_id, text)
        return self._registration_replies(outcome)

    async def _button(self, user_id: str, component_id: str) -> List[Reply]:
        if component_id.startswith("star_"):
            return await self._rate(user_id, component_id)
        if component_id == "start":
            return [Reply("📬 Check your DMs to continue."), main_menu()]
        if component_id == "gpt_ask":
            return [Reply(ASK_HELP), main_menu()]
        if component_id == "view_profile":
            return await self._view_profile(user_id)
        if component_id == "create_profile":
            return [Reply("📄 Do you have a resume (CV)?", Components.CV_CHOICE)]
        if component_id == "cv_yes":
            return [Reply("📄 Please upload your resume as a PDF.")]
        if component_id == "cv_no":
            return self._registration_replies(await self.registration.begin(user_id))
        if component_id == "match_jobs":
            return await self.match(user_id)
        if component_id == "delete_profile":
            return await self._delete_profile(user_id)
        if component_id == "feedback":
            return [Reply("📝 Bot Feedback", Components.FEEDBACK_FORM)]
        logger.info("Unrecognized button %r from %s", component_id, user_id)
        return [Reply("⚠️ Unrecognized button.")]

    async def _select(self, user_id: str, menu_id: str, values: Sequence[str]) -> List[Reply]:
        if menu_id == Components.SKILLS_MENU.value:
            return self._registration_replies(await self.registration.select_skills(user_id, values))
        if menu_id == Components.POSITIONS_MENU.value:
            return self._registration_replies(await self.registration.select_positions(user_id, values))
        logger.info("Unknown select menu %r from %s", menu_id, user_id)
        return [Reply("⚠️ Unknown select menu.")]

    async def _modal(self, user_id: str, modal_id: str, value: str) -> List[Reply]:
        if modal_id != Components.FEEDBACK_FORM.value:
            return [Reply("⚠️ Unknown form.")]
        if not value or not value.strip():
            return [Reply("❗ Feedback cannot be empty."), main_menu()]
        if not await asyncio.to_thread(self.feedback.add, user_id, value.strip()):
            return [Reply("❌ Your feedback could not be saved."), main_menu()]
        return [
            Reply("✅ Your feedback has been received!"),
            Reply("Thanks for your feedback! Please rate us:", Components.STAR_RATING),
        ]

    async def match(self, user_id: str, with_menu: bool = True) -> List[Reply]:
        """Aggregate opportunities for the user's saved skills and interests and render them."""
        profile = await asyncio.to_thread(self.profiles.get, user_id)
        tail = [main_menu()] if with_menu else []
        if profile is None or not profile.is_matchable():
            return [Reply("❗ You need to complete your profile first."), *tail]

        results = await self.aggregator.aggregate(user_id, profile.interest_text())
        if not results:
            return [Reply("😢 No opportunities found for your profile."), *tail]

        replies = [Reply(f"🎯 Found {len(results)} opportunities for you:")]
        for opportunity in results:
            components = Components.APPLY_LINK if opportunity.url.strip() else None
            replies.append(Reply(opportunity_card(opportunity), components, opportunity))
        return replies + tail

    async def _view_profile(self, user_id: str) -> List[Reply]:
        try:
            profile = await asyncio.to_thread(self.profiles.get, user_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Profile lookup failed for %s: %s", user_id, exc)
            return [Reply("❌ Error retrieving profile."), main_menu()]
        if profile is None or not profile.display_fields():
            return [Reply("⚠️ You don't have a profile yet. Select 'Create Profile' to start."), main_menu()]
        return [Reply(profile_card(profile)), main_menu()]

    async def _delete_profile(self, user_id: str) -> List[Reply]:
        await self.registration.reset(user_id)
        try:
            deleted = await asyncio.to_thread(delete_profile, self.profiles, self.assignments, user_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Profile deletion failed for %s: %s", user_id, exc)
            return [Reply("❌ An error occurred while trying to delete your profile."), main_menu()]
        if deleted:
            return [Reply("✅ Your profile has been successfully deleted."), main_menu()]
        return [Reply("⚠️ No profile was found to delete."), main_menu()]

    async def _rate(self, user_id: str, component_id: str) -> List[Reply]:
        try:
            stars = int(component_id.split("_", 1)[1])
            saved = await asyncio.to_thread(self.feedback.rate, user_id, stars)
        except ValueError:
            return [Reply("⚠️ Unrecognized rating.")]
        if not saved:
            return [Reply("⚠️ There is no feedback waiting for a rating."), main_menu()]
        return [Reply("⭐ Thanks! Your rating has been saved."), main_menu()]

    @staticmethod
    def _registration_replies(outcome: RegistrationOutcome) -> List[Reply]:
        if outcome.disposition is Disposition.IGNORED:
            return []
        replies = [Reply(text) for text in outcome.replies]
        if outcome.next_prompt is not None:
            replies.append(_PROMPT_REPLIES[outcome.next_prompt]())
        return replies
