"""
Portfolio Audit - 持仓截图分析

Schema定义：OCR 提取的持仓行、诊断结果、流水线状态
"""

import re
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from stockdesk.schemas.briefing import Language

_NUMBER_NOISE = re.compile(r"[,$\s¥€£]")


class PortfolioPosition(BaseModel):
    """OCR 提取的一条持仓"""
    symbol: str = Field(..., description="股票代码")
    qty: Optional[float] = Field(None, description="持有数量")
    cost: Optional[float] = Field(None, description="总成本")
    gain_pct: Optional[str] = Field(None, description="帐面损益百分比，如 +15.91%")

    @field_validator("symbol", mode="before")
    @classmethod
    def _normalize_symbol(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("qty", "cost", mode="before")
    @classmethod
    def _coerce_number(cls, value: Any) -> Optional[float]:
        # OCR 结果里常见 "3,621.02" / "$3621" / "?"
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        try:
            return float(_NUMBER_NOISE.sub("", str(value)))
        except ValueError:
            return None

    @field_validator("gain_pct", mode="before")
    @classmethod
    def _coerce_gain(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)


class PipelineStage(str, Enum):
    """持仓分析流水线阶段"""
    IDLE = "idle"
    EXTRACTING = "extracting"   # Stage A: Gemini OCR
    AUDITING = "auditing"       # Stage B: Perplexity 诊断
    DONE = "done"
    FAILED = "failed"


class PortfolioAuditResult(BaseModel):
    """持仓诊断结果（markdown 原文）"""
    report: str
    positions: List[PortfolioPosition] = Field(default_factory=list)
    degraded: bool = Field(False, description="持仓是否来自启发式降级提取")
    generated_at: str


class PipelineStatus(BaseModel):
    """流水线当前状态"""
    stage: PipelineStage = PipelineStage.IDLE
    step: str = ""
    busy: bool = False
    error: Optional[str] = None
    result: Optional[PortfolioAuditResult] = None


class ImageInfo(BaseModel):
    """待分析图片概要"""
    index: int
    filename: Optional[str] = None
    mime_type: str
    size: int


class ImageTrayResponse(BaseModel):
    """待分析图片列表"""
    images: List[ImageInfo] = Field(default_factory=list)


class AnalyzeRequest(BaseModel):
    """持仓分析请求"""
    language: Optional[Language] = Field(None, description="ZH / EN，缺省使用偏好设置")
