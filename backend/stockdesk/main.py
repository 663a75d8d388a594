"""
StockDesk - Backend API
FastAPI Application Entry Point
"""
# flake8: noqa: E501

# 加载 .env 文件 (必须在其他导入之前)
from dotenv import load_dotenv
load_dotenv()

# 标准库导入
import logging
import os
import time
from typing import List, Optional

# 第三方库导入
from fastapi import Depends, FastAPI, File, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# 应用导入
from stockdesk.core.config import Settings, settings
from stockdesk.core.constants import API_PREFIX
from stockdesk.core.error_handler import create_error_response, to_http_exception
from stockdesk.core.exceptions import StockDeskError, TickerNotInWatchlist
from stockdesk.deps import DashboardState, get_credentials, get_preferences, get_state, get_watchlist
from stockdesk.repositories.credential_repository import CredentialRepository
from stockdesk.repositories.watchlist_repository import WatchlistRepository, normalize_ticker
from stockdesk.schemas import (
    AddTickerRequest,
    AnalyzeRequest,
    BriefingRequest,
    BriefingResponse,
    ChartWidgetResponse,
    CredentialsUpdate,
    CredentialsView,
    ImageTrayResponse,
    PipelineStatus,
    PortfolioAuditResult,
    Preferences,
    PreferencesUpdate,
    ToggleResponse,
    WatchlistResponse,
)
from stockdesk.services.chart_widget import WIDGET_SCRIPT_SRC, build_widget_config, render_widget_html, widget_theme


def setup_logging(config: Settings) -> None:
    """配置根 logger：UTF-8 文件 + 控制台"""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    log_dir = os.path.dirname(config.LOG_FILE_PATH)
    try:
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(config.LOG_FILE_PATH, encoding="utf-8"))
    except OSError as e:
        print(f"[WARN] Cannot open log file {config.LOG_FILE_PATH}: {e}")

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
    )


setup_logging(settings)
logger = logging.getLogger(__name__)

# ============================================
# Application Configuration
# ============================================
app = FastAPI(
    title="StockDesk API",
    description="Watchlist, AI market briefings and portfolio screenshot audits",
    version="1.0.0",
)

# CORS 中间件 - 从配置读取
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# 请求日志中间件
@app.middleware("http")
async def log_requests(request, call_next):
    """记录所有请求"""
    start_time = time.time()
    logger.info(f"[REQUEST] {request.method} {request.url.path}")

    try:
        response = await call_next(request)
    except Exception as e:
        logger.exception(f"[ERROR] Request failed: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})

    process_time = (time.time() - start_time) * 1000
    logger.info(f"[RESPONSE] {request.method} {request.url.path} - {response.status_code} ({process_time:.0f}ms)")
    return response


# ============================================
# API Endpoints
# ============================================
@app.get("/")
async def root():
    """根路径健康检查"""
    return {
        "message": "StockDesk API",
        "status": "running",
        "version": "1.0.0",
    }


@app.get("/health")
async def health_check():
    """健康检查接口"""
    return {"status": "healthy"}


# ============================================
# Watchlist Endpoints
# ============================================

@app.get(f"{API_PREFIX}/watchlist", response_model=WatchlistResponse)
async def get_watchlist_endpoint(watchlist: WatchlistRepository = Depends(get_watchlist)):
    """获取关注列表与选中状态"""
    return watchlist.snapshot()


@app.post(f"{API_PREFIX}/watchlist", response_model=WatchlistResponse)
async def add_ticker(request: AddTickerRequest, watchlist: WatchlistRepository = Depends(get_watchlist)):
    """
    添加股票（自动转大写；已存在或为空时不变）
    """
    watchlist.add(request.symbol)
    return watchlist.snapshot()


@app.delete(f"{API_PREFIX}/watchlist/{{symbol}}", response_model=WatchlistResponse)
async def remove_ticker(symbol: str, watchlist: WatchlistRepository = Depends(get_watchlist)):
    """删除股票，同时取消选中"""
    if not watchlist.remove(symbol):
        raise to_http_exception(TickerNotInWatchlist(normalize_ticker(symbol)))
    return watchlist.snapshot()


@app.post(f"{API_PREFIX}/watchlist/{{symbol}}/toggle", response_model=ToggleResponse)
async def toggle_ticker(symbol: str, watchlist: WatchlistRepository = Depends(get_watchlist)):
    """切换选中状态"""
    try:
        selected = watchlist.toggle_selection(symbol)
    except StockDeskError as e:
        raise to_http_exception(e)
    return ToggleResponse(symbol=normalize_ticker(symbol), selected=selected, watchlist=watchlist.snapshot())


# ============================================
# Settings Endpoints
# ============================================

@app.get(f"{API_PREFIX}/credentials", response_model=CredentialsView)
async def get_credentials_endpoint(credentials: CredentialRepository = Depends(get_credentials)):
    """API Key 状态（只显示末四位）"""
    return credentials.masked()


@app.put(f"{API_PREFIX}/credentials", response_model=CredentialsView)
async def update_credentials(request: CredentialsUpdate, credentials: CredentialRepository = Depends(get_credentials)):
    """保存 API Key；空值只在本次运行生效，不写入存储"""
    credentials.set(chat_api_key=request.chat_api_key, vision_api_key=request.vision_api_key)
    return credentials.masked()


@app.get(f"{API_PREFIX}/preferences", response_model=Preferences)
async def get_preferences_endpoint(preferences: Preferences = Depends(get_preferences)):
    """语言与深色模式"""
    return preferences


@app.put(f"{API_PREFIX}/preferences", response_model=Preferences)
async def update_preferences(request: PreferencesUpdate, preferences: Preferences = Depends(get_preferences)):
    """切换语言 / 深色模式"""
    if request.language is not None:
        preferences.language = request.language
    if request.dark_mode is not None:
        preferences.dark_mode = request.dark_mode
    return preferences


# ============================================
# Market Briefing Endpoints
# ============================================

@app.post(f"{API_PREFIX}/briefing", response_model=BriefingResponse)
async def generate_briefing(request: Optional[BriefingRequest] = None, state: DashboardState = Depends(get_state)):
    """
    为选中的股票生成实时深度简报

    单支股票失败只在自己的卡片里返回 error，不影响其他股票。

    Returns:
        BriefingResponse: 代码 -> 简报
    """
    request = request or BriefingRequest()
    tickers = request.tickers if request.tickers is not None else state.watchlist.selected
    language = request.language or state.preferences.language

    try:
        reports = await state.briefing.refresh(tickers, language, state.credentials.get())
    except StockDeskError as e:
        raise to_http_exception(e)

    return BriefingResponse(language=language, generated_at=state.briefing.generated_at, reports=reports)


@app.get(f"{API_PREFIX}/briefing", response_model=BriefingResponse)
async def get_briefing(state: DashboardState = Depends(get_state)):
    """最近一次生成的简报"""
    board = state.briefing
    return BriefingResponse(language=board.language, generated_at=board.generated_at, reports=board.reports)


@app.get(f"{API_PREFIX}/chart/{{symbol}}", response_model=ChartWidgetResponse)
async def get_chart_widget(symbol: str, dark_mode: Optional[bool] = None, preferences: Preferences = Depends(get_preferences)):
    """TradingView 图表嵌入配置"""
    symbol = normalize_ticker(symbol)
    if not symbol:
        raise create_error_response(400, "symbol is required")
    dark = preferences.dark_mode if dark_mode is None else dark_mode
    return ChartWidgetResponse(
        symbol=symbol,
        theme=widget_theme(dark),
        script_src=WIDGET_SCRIPT_SRC,
        config=build_widget_config(symbol, dark),
        html=render_widget_html(symbol, dark),
    )


# ============================================
# Portfolio Analysis Endpoints
# ============================================

@app.post(f"{API_PREFIX}/portfolio/images", response_model=ImageTrayResponse)
async def upload_images(files: List[UploadFile] = File(...), state: DashboardState = Depends(get_state)):
    """
    上传持仓截图（可多张），累积到待分析列表
    """
    for file in files:
        content = await file.read()
        if not content:
            logger.warning(f"[WARN] Skipping empty upload: {file.filename}")
            continue
        state.images.add(content, mime_type=file.content_type, filename=file.filename)
        logger.info(f"[OK] Image queued: {file.filename} ({len(content)} bytes)")
    return ImageTrayResponse(images=state.images.describe())


@app.get(f"{API_PREFIX}/portfolio/images", response_model=ImageTrayResponse)
async def list_images(state: DashboardState = Depends(get_state)):
    return ImageTrayResponse(images=state.images.describe())


@app.delete(f"{API_PREFIX}/portfolio/images/{{index}}", response_model=ImageTrayResponse)
async def remove_image(index: int, state: DashboardState = Depends(get_state)):
    """按序号删除一张截图"""
    if not state.images.remove(index):
        raise create_error_response(404, f"Image {index} not found")
    return ImageTrayResponse(images=state.images.describe())


@app.delete(f"{API_PREFIX}/portfolio/images", response_model=ImageTrayResponse)
async def clear_images(state: DashboardState = Depends(get_state)):
    state.images.clear()
    return ImageTrayResponse(images=[])


@app.post(f"{API_PREFIX}/portfolio/analyze", response_model=PortfolioAuditResult)
async def analyze_portfolio(request: Optional[AnalyzeRequest] = None, state: DashboardState = Depends(get_state)):
    """
    持仓截图两阶段分析：Gemini 提取持仓 -> Perplexity 结合成本诊断

    任一阶段失败都返回一条错误信息，不返回部分结果。
    """
    language = (request.language if request else None) or state.preferences.language

    try:
        return await state.portfolio.run(state.images.images, state.credentials.get(), language)
    except StockDeskError as e:
        raise to_http_exception(e)


@app.get(f"{API_PREFIX}/portfolio/status", response_model=PipelineStatus)
async def get_portfolio_status(state: DashboardState = Depends(get_state)):
    """当前分析阶段与进度提示"""
    return state.portfolio.status()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("stockdesk.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)


# End of file
