"""Tests for the command line entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import json

import httpx
import pytest

import api_client.main as cli
from api_client.utils.http import AsyncAPIClient


def _install_client(monkeypatch, handler) -> list[float]:
    delays: list[float] = []

    async def _sleep(delay: float) -> None:
        delays.append(delay)

    class _MockedClient(AsyncAPIClient):
        def __init__(self, *args, **kwargs) -> None:
            super().__init__(*args, transport=httpx.MockTransport(handler), sleep=_sleep, **kwargs)

    monkeypatch.setattr(cli, "AsyncAPIClient", _MockedClient)
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)
    monkeypatch.setenv("API_CLIENT_BASE_URL", "https://api.test")
    monkeypatch.setenv("API_CLIENT_MAX_RETRIES", "2")
    monkeypatch.setenv("API_CLIENT_RETRY_DELAY_SECONDS", "0.5")
    return delays


def test_parse_header() -> None:
    assert cli.parse_header("X-Token: abc:def") == ("X-Token", "abc:def")
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_header("no-colon")


def test_build_request_defaults_to_json_content_type() -> None:
    args = cli.build_parser().parse_args(["post", "/items", "-H", "X-Id: 7", "-d", '{"a": 1}'])
    request = cli.build_request(args)
    assert request.method == "POST"
    assert request.endpoint == "/items"
    assert request.headers == {"Content-Type": "application/json", "X-Id": "7"}
    assert request.body == {"a": 1}


def test_run_prints_response_body(monkeypatch, capsys) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b'{"ok": true}')

    _install_client(monkeypatch, handler)
    exit_code = asyncio.run(cli.run(["POST", "/items", "-d", '{"name": "x"}']))

    assert exit_code == 0
    assert str(seen[0].url) == "https://api.test/items"
    assert json.loads(seen[0].content) == {"name": "x"}
    assert capsys.readouterr().out.strip() == 'Response: {"ok": true}'


def test_run_reports_final_error(monkeypatch, capsys) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    delays = _install_client(monkeypatch, handler)
    exit_code = asyncio.run(cli.run([]))

    assert exit_code == 1
    assert delays == [0.5, 0.5]
    assert capsys.readouterr().out.startswith("Error: HTTP request failed for URL: https://api.test/data")
