import asyncio
import json

import httpx
import pytest

from jobify.errors import DataError, TransportError
from jobify.llm import ChatCompletionClient, parse_json_reply


def _run_complete(handler, messages):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = ChatCompletionClient("sk-test", "gpt-3.5-turbo", base_url="https://llm.example.com/v1/", client=http)
            return await client.complete(messages)

    return asyncio.run(go())


def test_complete_posts_conversation_and_returns_first_choice():
    captured = {}

    def handler(request):
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "  Hello there \n"}}]})

    reply = _run_complete(handler, [{"role": "user", "content": "Hi"}])

    assert reply == "Hello there"
    assert captured["url"] == "https://llm.example.com/v1/chat/completions"
    assert captured["auth"] == "Bearer sk-test"
    assert captured["body"] == {"model": "gpt-3.5-turbo", "messages": [{"role": "user", "content": "Hi"}]}


def test_complete_raises_transport_error_on_failure_status():
    with pytest.raises(TransportError):
        _run_complete(lambda request: httpx.Response(429, json={"error": "rate limited"}), [])


def test_complete_raises_transport_error_on_unexpected_payload():
    with pytest.raises(TransportError):
        _run_complete(lambda request: httpx.Response(200, json={"choices": []}), [])


def test_parse_json_reply_plain_object():
    assert parse_json_reply('{"rating": 7}') == {"rating": 7}


def test_parse_json_reply_strips_code_fences():
    assert parse_json_reply('```json\n{"name": "Ada"}\n```') == {"name": "Ada"}
    assert parse_json_reply('```\n{"name": "Ada"}\n```') == {"name": "Ada"}


@pytest.mark.parametrize("reply", ["Sure! Here is the JSON", "[1, 2]", ""])
def test_parse_json_reply_rejects_non_objects(reply):
    with pytest.raises(DataError):
        parse_json_reply(reply)
