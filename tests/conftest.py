"""Shared pytest fixtures."""

import copy
import json
from collections.abc import Callable, Sequence
from pathlib import Path

import httpx
import pytest

from config.config_loader import AppConfig, ClientConfig, InboxConfig, NegotiationConfig, RetryConfig
from deepseek_json.chat import ChatBackend
from deepseek_json.dispatcher import RequestDispatcher, RetryPolicy
from deepseek_json.models import Message

BASE_URL = "http://deepseek.test"

_ARTIFACT: dict = {
    "type": "artifact",
    "artifact_name": "technical_task",
    "version": "1.0",
    "title": "Wallet balance tracker",
    "summary": "Track ERC-20 balances for a set of wallets.",
    "stakeholders": [{"role": "Ops", "description": "Runs the tracker"}],
    "scope": {"in_scope": ["Ethereum mainnet"], "out_of_scope": ["L2 chains"]},
    "requirements": {
        "functional": [
            {"id": "FR1", "statement": "Fetch balances every minute", "rationale": "Freshness"},
            {"id": "FR2", "statement": "Expose a JSON endpoint"},
        ],
        "non_functional": [{"id": "NFR1", "category": "performance", "target": "p95 < 200ms"}],
    },
    "data_integrations": {
        "rpc_providers": {"selection": ["Alchemy"], "endpoints": {"mainnet": "ALCHEMY_URL"}},
        "price_source": {"provider": "CoinGecko", "ttl_seconds": 60},
    },
    "constraints": ["Python 3.11"],
    "assumptions": ["Assumed: read-only access"],
    "risks": [{"id": "R1", "description": "RPC rate limits", "mitigation": "Backoff"}],
    "milestones": [{"id": "M1", "name": "MVP", "deliverables": ["Poller", "API"]}],
    "acceptance_criteria": [
        {"id": "AC1", "given": "a wallet", "when": "polled", "then": "balance is stored"},
    ],
    "open_questions": [],
    "status": "final",
    "end_token": "【END】",
}


def artifact_dict() -> dict:
    """A fresh, fully valid artifact document."""
    return copy.deepcopy(_ARTIFACT)


def artifact_json() -> str:
    return json.dumps(artifact_dict(), ensure_ascii=False)


def clarifying_dict(turn: int = 1, questions: list[dict] | None = None) -> dict:
    if questions is None:
        questions = [
            {"id": "q1", "text": "Which chain?", "required": True, "options": ["Ethereum", "Solana"]},
            {"id": "q2", "text": "Any latency target?", "required": False},
        ]
    return {
        "type": "clarifying_questions",
        "turn": turn,
        "max_questions": 3,
        "questions": questions,
        "checklist": [
            {"field": "scope", "status": "partial"},
            {"field": "requirements", "status": "missing"},
        ],
        "next_action": "await_user",
    }


def clarifying_json(turn: int = 1, questions: list[dict] | None = None) -> str:
    return json.dumps(clarifying_dict(turn, questions))


def api_success_body(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def structured_json() -> str:
    return json.dumps({
        "title": "Hello",
        "description": "World",
        "content": "Body",
        "category": "demo",
        "timestamp": "2024-01-01T00:00:00Z",
        "confidence": 0.9,
    })


def make_dispatcher(
    handler: Callable[[httpx.Request], httpx.Response],
    config: ClientConfig,
    **kwargs,
) -> RequestDispatcher:
    """RequestDispatcher whose HTTP transport is an in-process mock."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RequestDispatcher(config, kwargs.pop("retry", RetryPolicy()), http_client=http_client, **kwargs)


class ScriptedChat(ChatBackend):
    """Test double ChatBackend returning scripted replies in order."""

    def __init__(self, replies: list[str]) -> None:
        self._replies = list(replies)
        self.calls: list[tuple[Message, ...]] = []

    async def complete(self, messages: Sequence[Message]) -> str:
        self.calls.append(tuple(messages))
        if not self._replies:
            raise AssertionError("ScriptedChat ran out of replies")
        return self._replies.pop(0)


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(
        api_key="test_key",
        base_url=BASE_URL,
        model="test-model",
        max_tokens=256,
        temperature=0.1,
        timeout_sec=2,
    )


@pytest.fixture
def sample_app_config(client_config: ClientConfig, tmp_path: Path) -> AppConfig:
    return AppConfig(
        client=client_config,
        retry=RetryConfig(),
        negotiation=NegotiationConfig(max_questions=3, max_rounds=5),
        inbox=InboxConfig(dir=tmp_path / "inbox", archive_dir=tmp_path / "inbox" / "archive"),
        output_dir=tmp_path / "output",
    )
