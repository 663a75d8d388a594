import pytest

from helpers import CHAT_HOST, RecordingTransport, chat_response, request_json
from stockdesk.schemas.briefing import Language
from stockdesk.schemas.portfolio import PortfolioPosition
from stockdesk.services.audit_service import (
    AUDIT_SYSTEM_PROMPT,
    AuditService,
    build_audit_prompt,
    build_portfolio_context,
    compute_average_cost,
)


@pytest.mark.parametrize(
    "qty, cost, expected",
    [
        (12, 3621.02, 301.75),
        (5, 3065.42, 613.08),
        (0, 100, None),
        (None, 100, None),
        (10, None, None),
        (-1, 100, None),
    ],
)
def test_compute_average_cost(qty, cost, expected):
    position = PortfolioPosition(symbol="AVGO", qty=qty, cost=cost)

    assert compute_average_cost(position) == expected


def test_context_lists_every_position():
    positions = [
        PortfolioPosition(symbol="AVGO", qty=12, cost=3621.02, gain_pct="+15.91%"),
        PortfolioPosition(symbol="PLTR"),
    ]

    context = build_portfolio_context(positions, Language.ZH)
    lines = context.splitlines()

    assert lines[0] == "- AVGO: 持有 12 股, 總成本 $3621.02 (平均成本約 $301.75/股), 目前帳面損益 +15.91%"
    assert lines[1] == "- PLTR: 持有 未知 股, 總成本 $未知 (平均成本約 $未知/股), 目前帳面損益 未知"


def test_english_context_uses_english_unknowns():
    context = build_portfolio_context([PortfolioPosition(symbol="SPY", qty=5)], Language.EN)

    assert context.startswith("- SPY: holding 5 shares")
    assert "Unknown" in context


def test_audit_prompt_carries_time_and_format():
    positions = [PortfolioPosition(symbol="SPY", qty=5, cost=3065.42, gain_pct="+6.79%")]

    zh = build_audit_prompt(positions, Language.ZH, "10/19/2026, 14:30 EST")
    en = build_audit_prompt([PortfolioPosition(symbol="SPY")], Language.EN, "10/19/2026, 14:30 EST")

    assert "Current EST Time: 10/19/2026, 14:30 EST." in zh
    assert "## 📊 深度持倉診斷報告 (10/19/2026, 14:30 EST)" in zh
    assert "損益同步中" in zh
    assert "AVERAGE COST" in zh
    assert "Output Format (English)" in en
    assert "gain/loss unknown" in en


async def test_audit_returns_markdown_verbatim(config, clock):
    markdown = "## 📊 深度持倉診斷報告\n### AVGO\n* **操作建議**: **續抱**"
    transport = RecordingTransport(lambda r: chat_response(markdown))
    service = AuditService(config, transport=transport, clock=clock)

    report = await service.audit([PortfolioPosition(symbol="AVGO", qty=12, cost=3621.02)], Language.ZH, "pplx-test")

    assert report == markdown
    assert len(transport.hits(CHAT_HOST)) == 1
    body = request_json(transport.requests[0])
    assert body["temperature"] == 0.1
    assert body["messages"][0]["content"] == AUDIT_SYSTEM_PROMPT
    assert "$301.75" in body["messages"][1]["content"]
    assert "10/19/2026, 14:30 EST" in body["messages"][1]["content"]
