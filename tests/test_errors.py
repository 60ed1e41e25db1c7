"""Tests for deepseek_json/errors.py."""

import httpx
import openai
import pytest

from deepseek_json.errors import (
    USER_MESSAGES,
    DeepSeekError,
    ErrorKind,
    classify_exception,
    classify_status,
    user_message,
)

_REQUEST = httpx.Request("POST", "http://deepseek.test/chat/completions")


def _status_error(status: int, body: str) -> openai.APIStatusError:
    response = httpx.Response(status, text=body, request=_REQUEST)
    return openai.APIStatusError(f"Error code: {status}", response=response, body=None)


@pytest.mark.parametrize("status", [429, 502, 503, 504])
def test_busy_statuses_are_server_busy(status):
    err = classify_status(status, "busy")
    assert err.kind is ErrorKind.SERVER_BUSY
    assert err.is_transient


@pytest.mark.parametrize("status", [400, 401, 403, 404, 500])
def test_other_statuses_are_api_errors(status):
    err = classify_status(status, "bad req")
    assert err.kind is ErrorKind.API_ERROR
    assert err.status == status
    assert err.body == "bad req"
    assert not err.is_transient


def test_classify_sdk_status_error_keeps_body():
    err = classify_exception(_status_error(400, "bad req"), timeout_sec=5)
    assert err.kind is ErrorKind.API_ERROR
    assert err.status == 400
    assert "bad req" in err.body


def test_classify_sdk_timeout():
    err = classify_exception(openai.APITimeoutError(request=_REQUEST), timeout_sec=7)
    assert err.kind is ErrorKind.TIMEOUT
    assert err.seconds == 7
    assert not err.is_transient


def test_classify_builtin_timeout():
    err = classify_exception(TimeoutError(), timeout_sec=3)
    assert err.kind is ErrorKind.TIMEOUT
    assert err.seconds == 3


def test_classify_connection_refused():
    try:
        try:
            raise httpx.ConnectError("[Errno 111] Connection refused")
        except httpx.ConnectError as cause:
            raise openai.APIConnectionError(request=_REQUEST) from cause
    except openai.APIConnectionError as exc:
        err = classify_exception(exc, timeout_sec=5)
    assert err.kind is ErrorKind.NETWORK_ERROR
    assert err.detail == "Connection refused by server"
    assert err.is_transient


def test_classify_dns_failure():
    try:
        try:
            raise httpx.ConnectError("[Errno -2] Name or service not known")
        except httpx.ConnectError as cause:
            raise openai.APIConnectionError(request=_REQUEST) from cause
    except openai.APIConnectionError as exc:
        err = classify_exception(exc, timeout_sec=5)
    assert err.kind is ErrorKind.NETWORK_ERROR
    assert err.detail == "DNS resolution failed"


def test_classify_malformed_body_is_parse_error():
    err = classify_exception(ValueError("Expecting value: line 1 column 1"), timeout_sec=5)
    assert err.kind is ErrorKind.PARSE_ERROR
    assert not err.is_transient


def test_classify_passes_through_existing_error():
    original = DeepSeekError.config("API key cannot be empty")
    assert classify_exception(original, timeout_sec=5) is original


@pytest.mark.parametrize(
    "exc",
    [
        openai.APITimeoutError(request=_REQUEST),
        openai.APIConnectionError(request=_REQUEST),
        _status_error(503, "busy"),
        _status_error(418, "teapot"),
        ValueError("bad json"),
        RuntimeError("something else"),
    ],
)
def test_every_outcome_gets_exactly_one_kind(exc):
    err = classify_exception(exc, timeout_sec=5)
    assert isinstance(err, DeepSeekError)
    assert isinstance(err.kind, ErrorKind)


def test_error_str_per_kind():
    assert "busy" in str(DeepSeekError.server_busy())
    assert "after 9 seconds" in str(DeepSeekError.timeout(9))
    assert "API error (401)" in str(DeepSeekError.api(401, "unauthorized"))
    assert "Configuration error" in str(DeepSeekError.config("x"))


def test_user_message_covers_every_kind():
    assert set(USER_MESSAGES) == set(ErrorKind)
    assert "30 seconds" in user_message(DeepSeekError.timeout(30))
    assert "(404)" in user_message(DeepSeekError.api(404, "nope"))


def test_user_message_table_is_swappable():
    table = {kind: f"custom {kind.value}" for kind in ErrorKind}
    assert user_message(DeepSeekError.server_busy(), table) == "custom server_busy"


@pytest.mark.parametrize("status", [429, 503])
def test_user_message_for_api_error_comes_from_table(status):
    # Busy statuses classify as SERVER_BUSY; an API_ERROR only ever renders its table entry.
    assert classify_status(status, "").kind is ErrorKind.SERVER_BUSY
    assert user_message(DeepSeekError.api(status, "x")) == f"API error ({status}). Please try again later."
