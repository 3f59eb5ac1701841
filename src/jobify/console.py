"""Line-oriented console front end, handy for trying the assistant without a chat platform.

Plain lines are sent as messages. Other inputs:
    /button <id>              press a button (e.g. /button match_jobs)
    /select <menu> <a,b,...>  choose menu values (e.g. /select select_skills java,python)
    /feedback <text>          submit the feedback form
    /upload <path>            send a file as an attachment
    /quit                     leave
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from .app import build_dispatcher
from .config import MAIN_MENU_BUTTONS, MAX_SELECTIONS, POSITION_OPTIONS, SKILL_OPTIONS, AppConfig, configure_logging
from .dispatcher import GREETING, Components, ConversationDispatcher, Reply
from .ingestion import Attachment

logger = logging.getLogger(__name__)

MENU_LABELS = {
    "gpt_ask": "🤖 Ask GPT",
    "view_profile": "👤 View Profile",
    "create_profile": "📝 Create Profile",
    "match_jobs": "🎯 Match Me",
    "delete_profile": "🗑️ Delete Profile",
    "feedback": "⭐ Feedback",
}


def format_reply(reply: Reply) -> str:
    lines = [reply.text] if reply.text else []
    if reply.components is Components.MAIN_MENU:
        lines.extend(f"  [/button {button}] {MENU_LABELS[button]}" for button in MAIN_MENU_BUTTONS)
    elif reply.components is Components.CV_CHOICE:
        lines.append("  [/button cv_yes] ✅ Yes   [/button cv_no] ❌ No")
    elif reply.components is Components.SKILLS_MENU:
        lines.append(f"  /select select_skills <up to {MAX_SELECTIONS} of: {', '.join(SKILL_OPTIONS)}>")
    elif reply.components is Components.POSITIONS_MENU:
        lines.append(f"  /select select_position <up to {MAX_SELECTIONS} of: {', '.join(POSITION_OPTIONS)}>")
    elif reply.components is Components.STAR_RATING:
        lines.append("  " + "  ".join(f"[/button star_{n}] {'⭐' * n}" for n in range(1, 6)))
    elif reply.components is Components.FEEDBACK_FORM:
        lines.append("  /feedback <your thoughts>")
    elif reply.link:
        lines.append(f"  📩 Apply: {reply.link}")
    return "\n".join(lines)


async def handle_line(dispatcher: ConversationDispatcher, user_id: str, line: str) -> List[Reply]:
    command, _, rest = line.partition(" ")
    rest = rest.strip()
    if command == "/button":
        return await dispatcher.on_button(user_id, rest)
    if command == "/select":
        menu, _, values = rest.partition(" ")
        return await dispatcher.on_select(user_id, menu, [v for v in values.split(",") if v.strip()])
    if command == "/feedback":
        return await dispatcher.on_modal(user_id, Components.FEEDBACK_FORM.value, rest)
    if command == "/upload":
        path = Path(rest).expanduser()
        attachment = Attachment(filename=path.name, fetch=lambda: asyncio.to_thread(path.read_bytes))
        return await dispatcher.on_message(user_id, "", attachment)
    return await dispatcher.on_message(user_id, line)


def _print(replies: Iterable[Reply]) -> None:
    for reply in replies:
        print(format_reply(reply))
        print()


async def run_console(config: AppConfig, user_id: str) -> None:
    dispatcher = build_dispatcher(config)
    print(GREETING)
    _print(await dispatcher.on_button(user_id, "start"))
    while True:
        try:
            line = (await asyncio.to_thread(input, "> ")).strip()
        except EOFError:
            break
        if not line:
            continue
        if line == "/quit":
            break
        _print(await handle_line(dispatcher, user_id, line))


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Jobify career assistant (console)")
    parser.add_argument("--user", default="local-user", help="User id to chat as")
    parser.add_argument("--log-level", default=None, help="Logging level (default from LOG_LEVEL)")
    args = parser.parse_args(argv)

    config = AppConfig.from_env()
    configure_logging(args.log_level or config.log_level)
    asyncio.run(run_console(config, args.user))


if __name__ == "__main__":
    main()
