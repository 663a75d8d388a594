"""
OCR Service - 持仓截图结构化提取

使用 Gemini Vision 一次性读取全部截图，提取 {symbol, qty, cost, gain_pct}

解析顺序:
1. 去掉代码块标记，截取第一个 '[' 到最后一个 ']' 按 JSON 解析  -> PARSED
2. 解析失败时，扫描 2-5 位全大写代码作为持仓（数量/成本/损益未知）-> DEGRADED
3. 两者都为空 -> FAILED
"""

import logging
from typing import List, Optional, Sequence

import httpx
from pydantic import ValidationError

from stockdesk.core.config import Settings
from stockdesk.core.constants import TICKER_TOKEN_PATTERN
from stockdesk.core.llm_client import ImagePayload, VisionClient
from stockdesk.core.parsing import (
    ParseOutcome,
    ParseStatus,
    extract_ticker_tokens,
    parse_json_array,
    strip_code_fences,
)
from stockdesk.schemas.portfolio import PortfolioPosition

logger = logging.getLogger(__name__)


VISION_PROMPT = """
You are a specialized Financial OCR Robot.
Your task is to extract portfolio data from the image.

Please extract a list of positions with the following fields:
1. **symbol**: The stock ticker (e.g., NVDA, AVGO).
2. **qty**: The Quantity/Shares held (clean number).
3. **cost**: The "Cost" or "Total Cost" column (clean number, remove currency symbols).
4. **gain_pct**: The "Total gain/loss %" (keep the +/- sign and %, e.g., "+51.95%").

Output strictly a JSON array of objects. No markdown.
Example Format:
[
  {"symbol": "AVGO", "qty": 12, "cost": 3621.02, "gain_pct": "+15.91%"},
  {"symbol": "SPY", "qty": 5, "cost": 3065.42, "gain_pct": "+6.79%"}
]

If some fields are missing or unreadable, put null.
"""


def _rows_to_positions(rows: list) -> List[PortfolioPosition]:
    """JSON 行 -> 持仓；缺代码或结构不对的行跳过"""
    positions: List[PortfolioPosition] = []
    seen = set()
    for row in rows:
        if not isinstance(row, dict) or not row.get("symbol"):
            continue
        try:
            position = PortfolioPosition.model_validate(row)
        except ValidationError as e:
            logger.warning(f"[OCR] Skipping unreadable row {row}: {e}")
            continue
        if position.symbol and position.symbol not in seen:
            seen.add(position.symbol)
            positions.append(position)
    return positions


def parse_positions(text: str) -> ParseOutcome[List[PortfolioPosition]]:
    """
    解析 OCR 文本

    Args:
        text: Gemini 返回的原始文本

    Returns:
        ParseOutcome: PARSED / DEGRADED / FAILED
    """
    clean = strip_code_fences(text)

    outcome = parse_json_array(clean)
    if outcome.status is ParseStatus.PARSED:
        return ParseOutcome.parsed(_rows_to_positions(outcome.value))

    logger.warning(f"[OCR] Parsing failed ({outcome.reason}), fallback to simple ticker extraction")
    tokens = extract_ticker_tokens(clean, TICKER_TOKEN_PATTERN)
    if tokens:
        return ParseOutcome.degraded(
            [PortfolioPosition(symbol=t) for t in tokens],
            reason=outcome.reason or "structured parse failed",
        )
    return ParseOutcome.failed(outcome.reason or "no tickers found")


class OcrService:
    """持仓截图识别"""

    def __init__(self, config: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport

    async def extract(self, images: Sequence[ImagePayload], api_key: str) -> ParseOutcome[List[PortfolioPosition]]:
        """
        调用 Gemini 并解析持仓

        Raises:
            LLMAPIError: HTTP 调用失败（由流水线视为致命错误）
            LLMResponseError: 响应结构异常
        """
        client = VisionClient(api_key, self.config, transport=self._transport)
        logger.info(f"[OCR] Sending {len(images)} image(s) to {self.config.VISION_MODEL}")

        text = await client.generate(VISION_PROMPT, images)
        outcome = parse_positions(text)

        count = len(outcome.value) if outcome.value else 0
        logger.info(f"[OCR] Extraction {outcome.status.value}: {count} position(s)")
        return outcome
