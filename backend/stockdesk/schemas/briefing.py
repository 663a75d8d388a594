"""
Market Briefing - 个股简报

Schema定义：模型返回的十个字段 + 错误占位
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Language(str, Enum):
    """界面/提示词语言"""
    ZH = "ZH"   # 繁體中文
    EN = "EN"

    @classmethod
    def _missing_(cls, value: Any) -> Optional["Language"]:
        # 前端传小写 'zh' / 'en'
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None


_TEXT_FIELDS = (
    "support_level_short",
    "resistance_level_short",
    "major_news",
    "market_factors",
    "technical_analysis_detailed",
    "tomorrow_forecast",
    "week_ahead_forecast",
    "future_outlook",
    "conclusion",
)


class BriefingReport(BaseModel):
    """
    个股简报

    要么是模型返回的完整字段，要么只有 symbol + error
    """
    model_config = ConfigDict(extra="ignore")

    symbol: str = Field(..., description="股票代码，如 NVDA")
    sentiment_score: Optional[int] = Field(None, description="情绪评分 1-10，超出范围时截断")
    support_level_short: Optional[str] = Field(None, description="短线支撑位")
    resistance_level_short: Optional[str] = Field(None, description="短线压力位")
    major_news: Optional[str] = Field(None, description="过去24小时重大新闻")
    market_factors: Optional[str] = Field(None, description="多空因素与情绪")
    technical_analysis_detailed: Optional[str] = Field(None, description="技术面分析")
    tomorrow_forecast: Optional[str] = Field(None, description="明日预测")
    week_ahead_forecast: Optional[str] = Field(None, description="未来一周")
    future_outlook: Optional[str] = Field(None, description="中期展望")
    conclusion: Optional[str] = Field(None, description="操作总结")
    error: Optional[str] = Field(None, description="失败时的提示信息")

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        # 模型偶尔把要点输出成数组
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, list):
            return "\n".join(str(item) for item in value)
        return str(value)

    @field_validator("sentiment_score", mode="before")
    @classmethod
    def _coerce_score(cls, value: Any) -> Optional[int]:
        if value is None or isinstance(value, bool):
            return None
        try:
            score = int(round(float(str(value).split("/")[0].strip())))
        except (TypeError, ValueError, OverflowError):
            return None
        return min(max(score, 1), 10)

    @property
    def failed(self) -> bool:
        return self.error is not None

    @classmethod
    def from_error(cls, symbol: str, message: str) -> "BriefingReport":
        return cls(symbol=symbol, error=message)


class BriefingRequest(BaseModel):
    """简报生成请求；tickers 为空时使用当前选中的股票"""
    tickers: Optional[List[str]] = Field(None, description="要分析的股票代码")
    language: Optional[Language] = Field(None, description="语言，缺省使用偏好设置")


class BriefingResponse(BaseModel):
    """简报生成响应"""
    language: Language
    generated_at: Optional[str] = None
    reports: Dict[str, BriefingReport] = Field(default_factory=dict)
