import asyncio
import threading
from unittest.mock import MagicMock

import pytest

from jobify.errors import ValidationError
from jobify.model import RegistrationState
from jobify.registration import (
    INVALID_EMAIL,
    INVALID_SELECTION,
    Disposition,
    KeyedLock,
    Prompt,
    RegistrationStateMachine,
    validate_email,
)


@pytest.mark.parametrize("email", ["a@b.co", "first.last@uni.example.cz"])
def test_valid_emails(email):
    assert validate_email(f"  {email} ") == email


@pytest.mark.parametrize("email", ["a@b", "abc", "@b.co", "a b@c.de", ""])
def test_invalid_emails(email):
    with pytest.raises(ValidationError):
        validate_email(email)


def test_full_flow(profiles):
    machine = RegistrationStateMachine(profiles)

    async def flow():
        assert machine.state_of("u1") is RegistrationState.NONE
        started = await machine.begin("u1")
        assert started.state is RegistrationState.AWAITING_EMAIL

        rejected = await machine.handle_input("u1", "bad-email")
        assert rejected.disposition is Disposition.REJECTED
        assert rejected.replies == [INVALID_EMAIL]
        assert machine.state_of("u1") is RegistrationState.AWAITING_EMAIL

        accepted = await machine.handle_input("u1", "ok@x.com")
        assert accepted.state is RegistrationState.AWAITING_NAME

        named = await machine.handle_input("u1", "Ada Lovelace")
        assert named.state is RegistrationState.NONE
        assert named.next_prompt is Prompt.SKILLS

    asyncio.run(flow())

    profile = profiles.get("u1")
    assert profile.email == "ok@x.com"
    assert profile.name == "Ada Lovelace"
    assert machine.state_of("u1") is RegistrationState.NONE


def test_input_without_registration_is_ignored():
    store = MagicMock()
    machine = RegistrationStateMachine(store)

    outcome = asyncio.run(machine.handle_input("u1", "hello"))

    assert outcome.disposition is Disposition.IGNORED
    assert outcome.replies == []
    store.upsert.assert_not_called()


def test_blank_name_is_reprompted(profiles):
    machine = RegistrationStateMachine(profiles)

    async def flow():
        await machine.begin("u1")
        await machine.handle_input("u1", "ok@x.com")
        return await machine.handle_input("u1", "   ")

    outcome = asyncio.run(flow())
    assert outcome.disposition is Disposition.REJECTED
    assert machine.state_of("u1") is RegistrationState.AWAITING_NAME


def test_state_advances_even_when_store_write_fails():
    store = MagicMock()
    store.upsert.side_effect = [True, False]
    machine = RegistrationStateMachine(store)

    async def flow():
        await machine.begin("u1")
        return await machine.handle_input("u1", "ok@x.com")

    outcome = asyncio.run(flow())
    assert outcome.persisted is False
    assert machine.state_of("u1") is RegistrationState.AWAITING_NAME


def test_begin_fails_cleanly_when_profile_cannot_be_seeded():
    store = MagicMock()
    store.upsert.return_value = False
    machine = RegistrationStateMachine(store)

    outcome = asyncio.run(machine.begin("u1"))

    assert outcome.disposition is Disposition.REJECTED
    assert machine.state_of("u1") is RegistrationState.NONE


def test_reset_clears_state(profiles):
    machine = RegistrationStateMachine(profiles)

    async def flow():
        await machine.begin("u1")
        await machine.reset("u1")

    asyncio.run(flow())
    assert machine.state_of("u1") is RegistrationState.NONE


def test_skill_selection_leads_to_positions(profiles):
    machine = RegistrationStateMachine(profiles)

    skills = asyncio.run(machine.select_skills("u1", ["java", "python"]))
    positions = asyncio.run(machine.select_positions("u1", ["backend", "devops"]))

    assert skills.next_prompt is Prompt.POSITIONS
    assert positions.next_prompt is Prompt.MAIN_MENU
    profile = profiles.get("u1")
    assert profile.skills == "java, python"
    assert profile.career_interest == "backend, devops"


def test_empty_selection_is_rejected(profiles):
    machine = RegistrationStateMachine(profiles)

    outcome = asyncio.run(machine.select_skills("u1", []))

    assert outcome.disposition is Disposition.REJECTED
    assert outcome.next_prompt is Prompt.SKILLS
    assert profiles.get("u1") is None


def test_keyed_lock_serializes_same_key_only():
    locks = KeyedLock()
    events = []

    async def worker(key, name):
        async with locks.hold(key):
            events.append(f"{name}:in")
            await asyncio.sleep(0.01)
            events.append(f"{name}:out")

    async def run():
        await asyncio.gather(worker("u1", "a"), worker("u1", "b"), worker("u2", "c"))

    asyncio.run(run())

    a_in, a_out = events.index("a:in"), events.index("a:out")
    b_in, b_out = events.index("b:in"), events.index("b:out")
    assert a_out < b_in or b_out < a_in
    assert events.index("c:in") < max(a_out, b_out)
    assert not locks._locks


def test_double_submit_applies_transitions_one_at_a_time(profiles):
    machine = RegistrationStateMachine(profiles)

    async def flow():
        await machine.begin("u1")
        return await asyncio.gather(
            machine.handle_input("u1", "ok@x.com"),
            machine.handle_input("u1", "ok@x.com"),
        )

    first, second = asyncio.run(flow())

    assert first.state is RegistrationState.AWAITING_NAME
    assert second.state is RegistrationState.NONE
    assert machine.state_of("u1") is RegistrationState.NONE


def test_selection_off_the_menu_is_rejected(profiles):
    machine = RegistrationStateMachine(profiles)

    outcome = asyncio.run(machine.select_skills("u1", ["java", "not-a-skill"]))

    assert outcome.disposition is Disposition.REJECTED
    assert outcome.replies == [INVALID_SELECTION]
    assert outcome.next_prompt is Prompt.SKILLS
    assert profiles.get("u1") is None


def test_too_many_selections_are_rejected(profiles):
    machine = RegistrationStateMachine(profiles)

    skills = asyncio.run(machine.select_skills("u1", ["java", "python", "react", "sql", "git", "docker"]))
    positions = asyncio.run(machine.select_positions("u1", ["backend", "astronaut"]))

    assert skills.disposition is Disposition.REJECTED
    assert positions.disposition is Disposition.REJECTED
    assert positions.next_prompt is Prompt.POSITIONS
    assert profiles.get("u1") is None


def test_repeated_selection_counts_once(profiles):
    machine = RegistrationStateMachine(profiles)

    outcome = asyncio.run(machine.select_skills("u1", ["java", "java", "python", "sql", "git", "docker"]))

    assert outcome.disposition is Disposition.ACCEPTED
    assert profiles.get("u1").skills == "java, python, sql, git, docker"


def test_profile_writes_run_off_the_event_loop_thread():
    threads = []
    store = MagicMock()
    store.upsert.side_effect = lambda user_id, **fields: threads.append(threading.get_ident()) or True
    machine = RegistrationStateMachine(store)

    async def flow():
        await machine.begin("u1")
        await machine.handle_input("u1", "ok@x.com")
        return threading.get_ident()

    loop_thread = asyncio.run(flow())

    assert len(threads) == 2
    assert loop_thread not in threads
