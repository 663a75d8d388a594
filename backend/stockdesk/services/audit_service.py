# -*- coding: utf-8 -*-
"""
Audit Service - 持仓实时诊断
使用 Perplexity 联网获取即时报价，结合用户平均成本给出操作建议
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence

import httpx

from stockdesk.core.clock import format_wall_street_time
from stockdesk.core.config import Settings
from stockdesk.core.llm_client import ChatCompletionClient
from stockdesk.schemas.briefing import Language
from stockdesk.schemas.portfolio import PortfolioPosition

logger = logging.getLogger(__name__)


AUDIT_SYSTEM_PROMPT = "You are a hedge fund manager analyzing a client's specific entry points."

_UNKNOWN = {Language.ZH: "未知", Language.EN: "Unknown"}

_POSITION_LINE = {
    Language.ZH: "- {symbol}: 持有 {qty} 股, 總成本 ${cost} (平均成本約 ${avg}/股), 目前帳面損益 {gain}",
    Language.EN: "- {symbol}: holding {qty} shares, total cost ${cost} (average cost ≈ ${avg}/share), current book gain/loss {gain}",
}

_AUDIT_TASK = """
Current EST Time: {time}.

User's Actual Portfolio Positions (OCR Extracted):
{context}

TASK: You are a Senior Portfolio Manager. Perform a "Real-Time Holdings Audit" for this user.

INSTRUCTIONS:
1. **Get Live Quotes**: Search for the EXACT price right now for each stock.
2. **Compare with User's Cost**:
   - Compare the LIVE PRICE with the user's **AVERAGE COST** (calculated above).
   - If Live Price >> Avg Cost: Suggest "Take Profit" levels or "Trailing Stop".
   - If Live Price approx Avg Cost: Analyze momentum.
   - If Live Price << Avg Cost: Analyze if it's a "Buy the Dip" or "Stop Loss".
3. **Validate User's Gain %**: Check if the OCR's "gain_pct" makes sense with current price.
"""

_OUTPUT_FORMAT = {
    Language.ZH: """
Output Format (Traditional Chinese):

## 📊 深度持倉診斷報告 ({time})

### [代碼] 公司名
* **即時報價**: **$PRICE** (今日漲跌) 🕒
* **你的持倉**: 均價 $AVG_COST | 帳面 {gain_state}
* **操作建議**: **[加碼 / 減碼 / 續抱 / 止損]**
* **策略分析**:
  (這裡請具體寫：用戶成本在 $XXX，目前現價 $YYY。由於獲利已達 ZZ%，建議... 或者因為跌破成本，建議...)
* **關鍵點位**:
  - 🔴 壓力/止盈: $Price
  - 🟢 支撐/補倉: $Price

---
(Next Stock)

### 總體建議
(針對這組持倉的風險集中度給一句話)
""",
    Language.EN: """
Output Format (English):

## 📊 Deep Holdings Audit ({time})

### [TICKER] Company Name
* **Live Quote**: **$PRICE** (today's change) 🕒
* **Your Position**: Avg cost $AVG_COST | Book {gain_state}
* **Recommendation**: **[Accumulate / Reduce / Hold / Stop-Loss]**
* **Strategy**:
  (Be specific: the user's cost is $XXX, the live price is $YYY. Since the gain has reached ZZ%, suggest... or since it broke below cost, suggest...)
* **Key Levels**:
  - 🔴 Resistance / Take-profit: $Price
  - 🟢 Support / Add: $Price

---
(Next Stock)

### Overall Recommendation
(One sentence on the risk concentration of this portfolio)
""",
}

_GAIN_STATE = {
    Language.ZH: ("損益同步中", "損益未知"),
    Language.EN: ("gain/loss synced", "gain/loss unknown"),
}


def compute_average_cost(position: PortfolioPosition) -> Optional[float]:
    """
    平均成本 = 总成本 / 数量，保留两位小数

    数量或成本缺失、数量 <= 0 时返回 None（未知）
    """
    if position.cost is None or position.qty is None or position.qty <= 0:
        return None
    return round(position.cost / position.qty, 2)


def _fmt(value: Optional[float], language: Language) -> str:
    if value is None:
        return _UNKNOWN[language]
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def render_position(position: PortfolioPosition, language: Language) -> str:
    avg = compute_average_cost(position)
    return _POSITION_LINE[language].format(
        symbol=position.symbol,
        qty=_fmt(position.qty, language),
        cost=_fmt(position.cost, language),
        avg=f"{avg:.2f}" if avg is not None else _UNKNOWN[language],
        gain=position.gain_pct or _UNKNOWN[language],
    )


def build_portfolio_context(positions: Sequence[PortfolioPosition], language: Language) -> str:
    """把持仓渲染成项目符号列表"""
    return "\n".join(render_position(p, language) for p in positions)


def build_audit_prompt(positions: Sequence[PortfolioPosition], language: Language, time_str: str) -> str:
    synced, unknown = _GAIN_STATE[language]
    gain_state = synced if positions and positions[0].gain_pct else unknown
    return (
        _AUDIT_TASK.format(time=time_str, context=build_portfolio_context(positions, language))
        + _OUTPUT_FORMAT[language].format(time=time_str, gain_state=gain_state)
    )


class AuditService:
    """持仓诊断服务"""

    def __init__(
        self,
        config: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], Optional[datetime]] = lambda: None,
    ):
        self.config = config
        self._transport = transport
        self._clock = clock

    async def audit(
        self,
        positions: List[PortfolioPosition],
        language: Language,
        api_key: str,
    ) -> str:
        """
        生成 markdown 诊断报告，原样返回

        Raises:
            LLMAPIError: HTTP 调用失败
            LLMResponseError: 响应结构异常
        """
        time_str = format_wall_street_time(self._clock())
        prompt = build_audit_prompt(positions, language, time_str)

        client = ChatCompletionClient(api_key, self.config, transport=self._transport)
        report = await client.complete(
            AUDIT_SYSTEM_PROMPT,
            prompt,
            temperature=self.config.AUDIT_TEMPERATURE,
        )
        logger.info(f"[Audit] Generated report: {report[:50]}...")
        return report
