import asyncio
import json

import httpx
import pytest

from helpers import CHAT_HOST, RecordingTransport, briefing_json, chat_response, request_json, user_message
from stockdesk.core.constants import ERR_BRIEFING_FAILED, ERR_EMPTY_SELECTION, ERR_MISSING_CHAT_KEY
from stockdesk.core.exceptions import BriefingValidationError, OperationBusyError
from stockdesk.schemas.briefing import Language
from stockdesk.schemas.dashboard import Credentials
from stockdesk.services.briefing_service import (
    BriefingBoard,
    BriefingService,
    build_system_prompt,
    build_user_prompt,
    parse_briefing,
)


def symbol_of(request: httpx.Request) -> str:
    message = user_message(request)
    for symbol in ("NVDA", "AMD", "TSLA"):
        if symbol in message:
            return symbol
    raise AssertionError(f"no symbol in prompt: {message}")


def nvda_ok_amd_fails(request: httpx.Request) -> httpx.Response:
    symbol = symbol_of(request)
    if symbol == "AMD":
        return httpx.Response(500, json={"error": "boom"})
    return chat_response(briefing_json(symbol))


async def test_partial_failure_keeps_successful_report(config, credentials, clock):
    transport = RecordingTransport(nvda_ok_amd_fails)
    service = BriefingService(config, transport=transport, clock=clock)

    reports = await service.generate(["NVDA", "AMD"], Language.ZH, credentials)

    assert set(reports) == {"NVDA", "AMD"}
    assert reports["NVDA"].error is None
    assert reports["NVDA"].sentiment_score == 7
    assert reports["NVDA"].conclusion == "偏多續抱"
    assert reports["AMD"].error == ERR_BRIEFING_FAILED[Language.ZH]
    assert reports["AMD"].symbol == "AMD"
    assert len(transport.hits(CHAT_HOST)) == 2


async def test_unparseable_content_is_a_per_ticker_error(config, credentials, clock):
    def handler(request):
        if symbol_of(request) == "TSLA":
            return chat_response("I could not find data, sorry.")
        return chat_response("```json\n" + briefing_json("NVDA") + "\n```")

    service = BriefingService(config, transport=RecordingTransport(handler), clock=clock)

    reports = await service.generate(["NVDA", "TSLA"], Language.EN, credentials)

    assert reports["NVDA"].failed is False
    assert reports["TSLA"].error == ERR_BRIEFING_FAILED[Language.EN]


async def test_non_finite_score_does_not_abort_other_tickers(config, credentials, clock):
    def handler(request):
        if symbol_of(request) == "AMD":
            return chat_response('{"symbol": "AMD", "sentiment_score": 1e999}')
        return chat_response(briefing_json("NVDA"))

    service = BriefingService(config, transport=RecordingTransport(handler), clock=clock)

    reports = await service.generate(["NVDA", "AMD"], Language.EN, credentials)

    assert reports["NVDA"].sentiment_score == 7
    assert reports["AMD"].error is None
    assert reports["AMD"].sentiment_score is None


async def test_unexpected_parse_error_becomes_placeholder(config, credentials, clock, monkeypatch):
    def explode(symbol, content, language):
        raise RuntimeError("boom")

    monkeypatch.setattr("stockdesk.services.briefing_service.parse_briefing", explode)
    transport = RecordingTransport(lambda r: chat_response(briefing_json("NVDA")))
    service = BriefingService(config, transport=transport, clock=clock)

    reports = await service.generate(["NVDA"], Language.ZH, credentials)

    assert reports["NVDA"].error == ERR_BRIEFING_FAILED[Language.ZH]


@pytest.mark.parametrize(
    "raw, expected",
    [("inf", None), ("nan", None), (42, 10), (0, 1), (-3, 1), ("9/10", 9)],
)
def test_sentiment_score_is_bounded(raw, expected):
    report = parse_briefing("NVDA", json.dumps({"sentiment_score": raw}), Language.EN)

    assert report.sentiment_score == expected


async def test_no_tickers_fails_without_network(config, credentials):
    transport = RecordingTransport(lambda r: chat_response("{}"))
    service = BriefingService(config, transport=transport)

    with pytest.raises(BriefingValidationError) as exc:
        await service.generate([], Language.ZH, credentials)

    assert str(exc.value) == ERR_EMPTY_SELECTION[Language.ZH]
    assert transport.requests == []


async def test_missing_key_fails_without_network(config):
    transport = RecordingTransport(lambda r: chat_response("{}"))
    service = BriefingService(config, transport=transport)

    with pytest.raises(BriefingValidationError) as exc:
        await service.generate(["NVDA"], Language.EN, Credentials(chat_api_key="", vision_api_key="x"))

    assert str(exc.value) == ERR_MISSING_CHAT_KEY[Language.EN]
    assert transport.requests == []


async def test_request_shape(config, credentials, clock):
    transport = RecordingTransport(lambda r: chat_response(briefing_json("NVDA")))
    service = BriefingService(config, transport=transport, clock=clock)

    await service.generate(["nvda"], Language.EN, credentials)

    request = transport.requests[0]
    body = request_json(request)
    assert request.headers["Authorization"] == "Bearer pplx-test"
    assert body["model"] == "sonar-pro"
    assert body["temperature"] == 0.3
    assert [m["role"] for m in body["messages"]] == ["system", "user"]
    assert "10/19/2026, 14:30 EST" in body["messages"][0]["content"]
    assert "NVDA" in body["messages"][1]["content"]


async def test_report_is_keyed_by_requested_ticker(config, credentials, clock):
    transport = RecordingTransport(lambda r: chat_response('{"symbol": "nvidia", "sentiment_score": "8/10"}'))
    service = BriefingService(config, transport=transport, clock=clock)

    reports = await service.generate(["NVDA"], Language.EN, credentials)

    assert reports["NVDA"].symbol == "NVDA"
    assert reports["NVDA"].sentiment_score == 8


async def test_stream_yields_every_ticker(config, credentials, clock):
    transport = RecordingTransport(nvda_ok_amd_fails)
    service = BriefingService(config, transport=transport, clock=clock)

    results = {symbol: report async for symbol, report in service.stream(["NVDA", "AMD"], Language.ZH, credentials)}

    assert set(results) == {"NVDA", "AMD"}
    assert results["AMD"].failed


def test_prompts_follow_language():
    zh = build_system_prompt(Language.ZH, "10/19/2026, 14:30 EST")
    en = build_system_prompt(Language.EN, "10/19/2026, 14:30 EST")

    assert "繁體中文" in zh
    assert "MUST be in English" in en
    for field in ("sentiment_score", "technical_analysis_detailed", "week_ahead_forecast", "conclusion"):
        assert f'"{field}"' in zh
        assert f'"{field}"' in en
    assert "深度分析代號：AMD" in build_user_prompt("AMD", Language.ZH, "t")
    assert "Symbol: AMD" in build_user_prompt("AMD", Language.EN, "t")


def test_parse_briefing_joins_list_fields():
    report = parse_briefing("NVDA", '{"major_news": ["a", "b"], "sentiment_score": 6.6}', Language.EN)

    assert report.major_news == "a\nb"
    assert report.sentiment_score == 7


async def test_board_replaces_reports_and_rejects_concurrent_refresh(config, credentials, clock):
    release = asyncio.Event()

    class SlowService(BriefingService):
        async def generate(self, tickers, language, credentials):
            await release.wait()
            return await super().generate(tickers, language, credentials)

    transport = RecordingTransport(lambda r: chat_response(briefing_json(symbol_of(r))))
    board = BriefingBoard(SlowService(config, transport=transport, clock=clock))
    board.reports = {"TSLA": parse_briefing("TSLA", briefing_json("TSLA"), Language.ZH)}

    first = asyncio.create_task(board.refresh(["NVDA"], Language.ZH, credentials))
    await asyncio.sleep(0)
    assert board.busy

    with pytest.raises(OperationBusyError):
        await board.refresh(["AMD"], Language.ZH, credentials)

    release.set()
    await first

    assert list(board.reports) == ["NVDA"]
    assert not board.busy


async def test_board_keeps_previous_reports_on_validation_error(config, clock):
    board = BriefingBoard(BriefingService(config, clock=clock))
    previous = {"TSLA": parse_briefing("TSLA", briefing_json("TSLA"), Language.ZH)}
    board.reports = previous

    with pytest.raises(BriefingValidationError):
        await board.refresh([], Language.ZH, Credentials(chat_api_key="k"))

    assert board.reports == previous
