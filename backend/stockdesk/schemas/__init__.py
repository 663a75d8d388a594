"""
Schemas - API 与领域数据模型
"""

from stockdesk.schemas.briefing import BriefingReport, BriefingRequest, BriefingResponse, Language
from stockdesk.schemas.dashboard import (
    AddTickerRequest,
    ChartWidgetResponse,
    Credentials,
    CredentialsUpdate,
    CredentialsView,
    Preferences,
    PreferencesUpdate,
    ToggleResponse,
    WatchlistResponse,
)
from stockdesk.schemas.portfolio import (
    AnalyzeRequest,
    ImageInfo,
    ImageTrayResponse,
    PipelineStage,
    PipelineStatus,
    PortfolioAuditResult,
    PortfolioPosition,
)

__all__ = [
    "AddTickerRequest",
    "AnalyzeRequest",
    "BriefingReport",
    "BriefingRequest",
    "BriefingResponse",
    "ChartWidgetResponse",
    "Credentials",
    "CredentialsUpdate",
    "CredentialsView",
    "ImageInfo",
    "ImageTrayResponse",
    "Language",
    "PipelineStage",
    "PipelineStatus",
    "PortfolioAuditResult",
    "PortfolioPosition",
    "Preferences",
    "PreferencesUpdate",
    "ToggleResponse",
    "WatchlistResponse",
]
