"""Tests for deepseek_json/chat.py."""

import json

import httpx

from deepseek_json.chat import ChatExchange
from deepseek_json.models import Message, Role
from tests.conftest import api_success_body, clarifying_json, make_dispatcher


async def test_exchange_returns_raw_assistant_text(client_config):
    raw = clarifying_json()
    dispatcher = make_dispatcher(lambda r: httpx.Response(200, json=api_success_body(raw)), client_config)
    exchange = ChatExchange(dispatcher)

    text = await exchange.complete([Message(Role.USER, "hi")])

    assert text == raw  # unparsed


async def test_exchange_sends_full_history_in_order(client_config):
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json=api_success_body("{}"))

    exchange = ChatExchange(make_dispatcher(handler, client_config))
    history = [
        Message(Role.SYSTEM, "sys"),
        Message(Role.USER, "task"),
        Message(Role.ASSISTANT, '{"type":"clarifying_questions"}'),
        Message(Role.USER, '{"answers":[]}'),
    ]

    await exchange.complete(history)

    assert [m["role"] for m in seen[0]["messages"]] == ["system", "user", "assistant", "user"]
    assert seen[0]["messages"][3]["content"] == '{"answers":[]}'
