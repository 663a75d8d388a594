# -*- coding: utf-8 -*-
"""
Briefing Service - 个股实时深度简报

每支选中的股票独立、并发地调用一次 Perplexity：
- 单支失败（HTTP 错误或 JSON 解析失败）只影响自己，返回 {symbol, error}
- 全部结束后一次性替换看板上的报告
"""

import asyncio
import logging
from datetime import datetime
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from stockdesk.core.clock import format_wall_street_time
from stockdesk.core.config import Settings
from stockdesk.core.constants import ERR_BRIEFING_FAILED, ERR_EMPTY_SELECTION, ERR_MISSING_CHAT_KEY
from stockdesk.core.exceptions import BriefingValidationError, LLMAPIError, LLMResponseError
from stockdesk.core.guard import OperationGuard
from stockdesk.core.llm_client import ChatCompletionClient
from stockdesk.core.parsing import ParseStatus, parse_json_object
from stockdesk.repositories.watchlist_repository import normalize_ticker
from stockdesk.schemas.briefing import BriefingReport, Language
from stockdesk.schemas.dashboard import Credentials

logger = logging.getLogger(__name__)


# ============================================
# 提示词
# ============================================

RECENCY_INSTRUCTION = (
    "CRITICAL: Analysis MUST be based on LATEST data (last 24 hours) relative to {time}. "
    "Include pre-market/after-hours data."
)

_SYSTEM_HEADER = """
You are a professional Wall Street senior analyst creating a **real-time, deep-dive briefing** for sophisticated investors.

**TIME CONTEXT**:
Current Wall Street Time: **{time}**.

**STRICT INSTRUCTIONS**:
1. {recency}
"""

_SYSTEM_RULES = {
    Language.ZH: """2. LANGUAGE: All text content MUST be in Traditional Chinese (繁體中文).
3. STYLE: Professional, analytical, **detailed, and insightful**. Avoid generic summaries. Use financial terminology (e.g., "獲利回吐", "估值壓力", "震盪整理").
4. **DEPTH**: Do not be brief. Provide distinct reasons and logic for every section.
5. FORMAT: Return ONLY a valid JSON object. No markdown.
""",
    Language.EN: """2. LANGUAGE: All text content MUST be in English.
3. STYLE: Professional, analytical, **detailed, and insightful**. Avoid generic summaries.
4. **DEPTH**: Do not be brief. Provide distinct reasons and logic for every section.
5. FORMAT: Return ONLY a valid JSON object. No markdown.
""",
}

_SCHEMA = {
    Language.ZH: """
Expected JSON Structure:
{
  "symbol": "STRING (Ticker)",
  "sentiment_score": NUMBER (1-10),
  "support_level_short": "STRING (Current levels based on latest price)",
  "resistance_level_short": "STRING",
  "major_news": "STRING (Bullet points. The most critical news from the last 24 hours in 繁體中文)",
  "market_factors": "STRING (Detailed paragraph in 繁體中文. Explain WHY the stock is moving NOW. Discuss valuation, sentiment, and specific catalysts. Do not summarize; analyze.)",
  "technical_analysis_detailed": "STRING (Detailed paragraph in 繁體中文. Provide short-term support/resistance, moving averages status, volume structure, and specific candlestick patterns from today.)",
  "tomorrow_forecast": "STRING (Detailed paragraph in 繁體中文. Predict the immediate next session's scenario with specific price ranges and drivers.)",
  "week_ahead_forecast": "STRING (Detailed paragraph in 繁體中文. Outlook for the coming week, potential catalysts, and risk scenarios.)",
  "future_outlook": "STRING (Detailed paragraph in 繁體中文. Mid-to-long term (3-12 mo) view, growth drivers, and structural changes.)",
  "conclusion": "STRING (Actionable summary: 偏多續抱／逢回佈局／保守觀望／逢高減碼)"
}""",
    Language.EN: """
Expected JSON Structure:
{
  "symbol": "STRING (Ticker)",
  "sentiment_score": NUMBER (1-10),
  "support_level_short": "STRING (Current levels based on latest price)",
  "resistance_level_short": "STRING",
  "major_news": "STRING (Bullet points. The most critical news from the last 24 hours)",
  "market_factors": "STRING (Detailed paragraph. Explain WHY the stock is moving NOW. Discuss valuation, sentiment, and specific catalysts. Do not summarize; analyze.)",
  "technical_analysis_detailed": "STRING (Detailed paragraph. Provide short-term support/resistance, moving averages status, volume structure, and specific candlestick patterns from today.)",
  "tomorrow_forecast": "STRING (Detailed paragraph. Predict the immediate next session's scenario with specific price ranges and drivers.)",
  "week_ahead_forecast": "STRING (Detailed paragraph. Outlook for the coming week, potential catalysts, and risk scenarios.)",
  "future_outlook": "STRING (Detailed paragraph. Mid-to-long term (3-12 mo) view, growth drivers, and structural changes.)",
  "conclusion": "STRING (Actionable summary)"
}""",
}

_USER_PROMPT = {
    Language.ZH: """深度分析代號：{symbol}。基準時間：{time}。
請結合「最新即時數據（過去24小時）」與「深度邏輯推演」。
請勿簡略，需詳細說明市場情緒、技術型態、盤前/盤後動態對明日走勢的影響。
忽略過時新聞，專注於當下發生的事件。""",
    Language.EN: """Deep Dive Analysis for Symbol: {symbol}. Reference Time: {time}.
Combine "LATEST Real-time Data (Last 24h)" with "Comprehensive Reasoning".
Do NOT be brief. Explain market sentiment, technical patterns, and pre-market/after-hours impact on tomorrow's trend.
Ignore outdated news. Focus on what is happening NOW.""",
}


def build_system_prompt(language: Language, time_str: str) -> str:
    header = _SYSTEM_HEADER.format(time=time_str, recency=RECENCY_INSTRUCTION.format(time=time_str))
    return header + _SYSTEM_RULES[language] + _SCHEMA[language]


def build_user_prompt(symbol: str, language: Language, time_str: str) -> str:
    return _USER_PROMPT[language].format(symbol=symbol, time=time_str)


def parse_briefing(symbol: str, content: str, language: Language) -> BriefingReport:
    """把模型输出解析成简报；失败时返回错误占位"""
    outcome = parse_json_object(content)
    if outcome.status is ParseStatus.FAILED:
        logger.warning(f"[Briefing] {symbol} parse failed: {outcome.reason}")
        return BriefingReport.from_error(symbol, ERR_BRIEFING_FAILED[language])

    data = dict(outcome.value)
    data["symbol"] = symbol
    data.pop("error", None)
    try:
        return BriefingReport.model_validate(data)
    except ValidationError as e:
        logger.warning(f"[Briefing] {symbol} report shape rejected: {e}")
        return BriefingReport.from_error(symbol, ERR_BRIEFING_FAILED[language])


# ============================================
# 服务类
# ============================================

class BriefingService:
    """个股简报服务"""

    def __init__(
        self,
        config: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime | None] = lambda: None,
    ):
        self.config = config
        self._transport = transport
        self._clock = clock

    def validate(self, tickers: Iterable[str], language: Language, credentials: Credentials) -> List[str]:
        """
        前置校验，失败时不发任何请求

        Returns:
            List[str]: 规范化、去重后的股票代码
        """
        if not credentials.chat_api_key:
            raise BriefingValidationError(ERR_MISSING_CHAT_KEY[language])

        symbols: List[str] = []
        for raw in tickers:
            symbol = normalize_ticker(raw)
            if symbol and symbol not in symbols:
                symbols.append(symbol)

        if not symbols:
            raise BriefingValidationError(ERR_EMPTY_SELECTION[language])
        return symbols

    async def generate(
        self,
        tickers: Iterable[str],
        language: Language,
        credentials: Credentials,
    ) -> Dict[str, BriefingReport]:
        """
        并发生成所有简报，全部结束后返回

        Returns:
            Dict[str, BriefingReport]: 代码 -> 简报（或错误占位）
        """
        symbols = self.validate(tickers, language, credentials)
        llm = ChatCompletionClient(credentials.chat_api_key, self.config, transport=self._transport)
        time_str = format_wall_street_time(self._clock())
        system = build_system_prompt(language, time_str)

        logger.info(f"[Briefing] Generating {len(symbols)} briefings: {', '.join(symbols)}")
        async with llm.open() as client:
            reports = await asyncio.gather(*(
                self._brief_one(llm, client, symbol, system, language, time_str)
                for symbol in symbols
            ))

        failed = sum(1 for r in reports if r.failed)
        logger.info(f"[Briefing] Done: {len(reports) - failed} ok, {failed} failed")
        return {report.symbol: report for report in reports}

    async def stream(
        self,
        tickers: Iterable[str],
        language: Language,
        credentials: Credentials,
    ) -> AsyncIterator[Tuple[str, BriefingReport]]:
        """按完成顺序逐个产出 (代码, 简报)，顺序不固定"""
        symbols = self.validate(tickers, language, credentials)
        llm = ChatCompletionClient(credentials.chat_api_key, self.config, transport=self._transport)
        time_str = format_wall_street_time(self._clock())
        system = build_system_prompt(language, time_str)

        async with llm.open() as client:
            tasks = [
                asyncio.ensure_future(self._brief_one(llm, client, symbol, system, language, time_str))
                for symbol in symbols
            ]
            try:
                for finished in asyncio.as_completed(tasks):
                    report = await finished
                    yield report.symbol, report
            finally:
                for task in tasks:
                    task.cancel()

    async def _brief_one(
        self,
        llm: ChatCompletionClient,
        client: httpx.AsyncClient,
        symbol: str,
        system: str,
        language: Language,
        time_str: str,
    ) -> BriefingReport:
        """单支股票：任何失败都转换成错误占位，不影响其他股票"""
        try:
            content = await llm.complete(
                system,
                build_user_prompt(symbol, language, time_str),
                temperature=self.config.BRIEFING_TEMPERATURE,
                client=client,
            )
        except (LLMAPIError, LLMResponseError) as e:
            logger.error(f"[Briefing] Error fetching {symbol}: {e}")
            return BriefingReport.from_error(symbol, ERR_BRIEFING_FAILED[language])

        try:
            return parse_briefing(symbol, content, language)
        except Exception as e:
            logger.exception(f"[Briefing] Unexpected error parsing {symbol}: {e}")
            return BriefingReport.from_error(symbol, ERR_BRIEFING_FAILED[language])


class BriefingBoard:
    """
    看板上的简报结果

    只有持有忙碌标记的那次生成可以写入；结果整体替换，不做局部更新。
    """

    def __init__(self, service: BriefingService):
        self.service = service
        self.guard = OperationGuard("briefing")
        self.reports: Dict[str, BriefingReport] = {}
        self.language: Language = Language.ZH
        self.generated_at: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self.guard.busy

    async def refresh(
        self,
        tickers: Iterable[str],
        language: Language,
        credentials: Credentials,
    ) -> Dict[str, BriefingReport]:
        """
        重新生成并替换看板结果

        Raises:
            OperationBusyError: 已有简报在生成
            BriefingValidationError: 缺 Key 或没有选中股票
        """
        tickers = list(tickers)
        async with self.guard.hold():
            # 校验失败时保留旧结果
            self.service.validate(tickers, language, credentials)
            self.reports = {}
            reports = await self.service.generate(tickers, language, credentials)
            self.reports = reports
            self.language = language
            self.generated_at = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
            return reports
