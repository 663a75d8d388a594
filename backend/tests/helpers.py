"""
Test helpers: 模拟 Perplexity / Gemini 响应
"""

import json
from typing import Callable, List

import httpx

CHAT_HOST = "api.perplexity.ai"
VISION_HOST = "generativelanguage.googleapis.com"


def chat_response(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def vision_response(text: str) -> httpx.Response:
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def request_json(request: httpx.Request) -> dict:
    return json.loads(request.content)


def user_message(request: httpx.Request) -> str:
    body = request_json(request)
    return next(m["content"] for m in body["messages"] if m["role"] == "user")


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served"""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    def hits(self, host: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]


def briefing_json(symbol: str, score: int = 7) -> str:
    return json.dumps({
        "symbol": symbol,
        "sentiment_score": score,
        "support_level_short": "$120",
        "resistance_level_short": "$135",
        "major_news": "- Earnings beat",
        "market_factors": "Momentum is strong.",
        "technical_analysis_detailed": "Above the 20-day MA.",
        "tomorrow_forecast": "Range 125-132.",
        "week_ahead_forecast": "Watch CPI.",
        "future_outlook": "Data center demand.",
        "conclusion": "偏多續抱",
    }, ensure_ascii=False)
