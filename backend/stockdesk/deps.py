"""
Dependency functions for FastAPI
组装存储、仓库和服务，供各接口注入
"""
from functools import lru_cache
from typing import Optional

import httpx
from fastapi import Depends

from stockdesk.core.config import Settings, settings
from stockdesk.core.storage import KeyValueStore, get_store
from stockdesk.repositories.credential_repository import CredentialRepository
from stockdesk.repositories.watchlist_repository import WatchlistRepository
from stockdesk.schemas.briefing import Language
from stockdesk.schemas.dashboard import Preferences
from stockdesk.services.audit_service import AuditService
from stockdesk.services.briefing_service import BriefingBoard, BriefingService
from stockdesk.services.ocr_service import OcrService
from stockdesk.services.portfolio_service import ImageTray, PortfolioPipeline


class DashboardState:
    """
    一个用户看板的全部状态

    Args:
        config: 应用配置
        store: 键值存储（关注列表、API Key）
        transport: 可选的 httpx transport，测试时注入 MockTransport
    """

    def __init__(
        self,
        config: Settings,
        store: KeyValueStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.store = store
        self.credentials = CredentialRepository(store, config)
        self.watchlist = WatchlistRepository(store)
        self.preferences = Preferences(language=Language(config.DEFAULT_LANGUAGE))
        self.briefing = BriefingBoard(BriefingService(config, transport=transport))
        self.images = ImageTray()
        self.portfolio = PortfolioPipeline(
            OcrService(config, transport=transport),
            AuditService(config, transport=transport),
        )


@lru_cache(maxsize=1)
def get_state() -> DashboardState:
    """获取全局看板状态"""
    return DashboardState(settings, get_store())


def get_watchlist(state: DashboardState = Depends(get_state)) -> WatchlistRepository:
    return state.watchlist


def get_credentials(state: DashboardState = Depends(get_state)) -> CredentialRepository:
    return state.credentials


def get_preferences(state: DashboardState = Depends(get_state)) -> Preferences:
    return state.preferences
