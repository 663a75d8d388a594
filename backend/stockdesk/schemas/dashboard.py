"""
Dashboard - 关注列表 / API Key / 偏好设置 / 图表

Schema定义：请求与响应模型
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from stockdesk.schemas.briefing import Language


class Credentials(BaseModel):
    """两把 API Key"""
    chat_api_key: str = Field("", description="Perplexity API Key")
    vision_api_key: str = Field("", description="Google Gemini API Key")


class CredentialsUpdate(BaseModel):
    """更新 API Key；未提供的字段保持不变"""
    chat_api_key: Optional[str] = None
    vision_api_key: Optional[str] = None


class CredentialsView(BaseModel):
    """对外展示的 Key 状态（只露末四位）"""
    chat_api_key_set: bool
    chat_api_key_hint: str = ""
    vision_api_key_set: bool
    vision_api_key_hint: str = ""


class AddTickerRequest(BaseModel):
    """添加股票请求"""
    symbol: str = Field(..., description="股票代码，大小写均可")


class WatchlistResponse(BaseModel):
    """关注列表"""
    tickers: List[str]
    selected: List[str]


class ToggleResponse(BaseModel):
    """切换选中状态响应"""
    symbol: str
    selected: bool
    watchlist: WatchlistResponse


class Preferences(BaseModel):
    """界面偏好"""
    language: Language = Language.ZH
    dark_mode: bool = False


class PreferencesUpdate(BaseModel):
    language: Optional[Language] = None
    dark_mode: Optional[bool] = None


class ChartWidgetResponse(BaseModel):
    """TradingView 嵌入配置"""
    symbol: str
    theme: str
    script_src: str
    config: dict
    html: str
