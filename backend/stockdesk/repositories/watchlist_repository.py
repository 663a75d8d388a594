"""
Watchlist Repository

关注列表数据访问层

职责:
- 维护有序、去重的股票代码列表（插入顺序即展示顺序）
- 维护选中集合，保证 选中集合 ⊆ 关注列表
- 每次变更把整份列表序列化成 JSON 写入存储
"""

import json
import logging
from typing import Iterable, List

from stockdesk.core.constants import DEFAULT_SELECTION, DEFAULT_TICKERS, STORAGE_KEY_WATCHLIST
from stockdesk.core.exceptions import StorageError, TickerNotInWatchlist
from stockdesk.core.storage import KeyValueStore
from stockdesk.schemas.dashboard import WatchlistResponse

logger = logging.getLogger(__name__)


def normalize_ticker(symbol: str | None) -> str:
    """去空白并转大写"""
    return (symbol or "").strip().upper()


class WatchlistRepository:
    """关注列表 Repository"""

    def __init__(
        self,
        store: KeyValueStore,
        default_tickers: Iterable[str] = DEFAULT_TICKERS,
        default_selection: Iterable[str] = DEFAULT_SELECTION,
    ):
        """
        初始化 Repository

        Args:
            store: 键值存储
            default_tickers: 存储为空或损坏时使用的默认列表
            default_selection: 初始选中的股票（会与关注列表取交集）
        """
        self.store = store
        self._default_tickers = list(default_tickers)
        self._tickers: List[str] = self._load()
        # dict 保持选中顺序
        self._selected: dict[str, None] = {
            t: None for t in (normalize_ticker(s) for s in default_selection) if t in self._tickers
        }

    # ------------------------------------------------------------------
    # 持久化
    # ------------------------------------------------------------------

    def _load(self) -> List[str]:
        try:
            saved = self.store.get_item(STORAGE_KEY_WATCHLIST)
        except StorageError as e:
            logger.warning(f"Failed to load watchlist from storage: {e}")
            return list(self._default_tickers)

        if not saved:
            return list(self._default_tickers)

        try:
            parsed = json.loads(saved)
        except json.JSONDecodeError as e:
            logger.warning(f"Stored watchlist is not valid JSON, using defaults: {e}")
            return list(self._default_tickers)

        if not isinstance(parsed, list):
            logger.warning("Stored watchlist is not a JSON array, using defaults")
            return list(self._default_tickers)

        tickers: List[str] = []
        for item in parsed:
            if not isinstance(item, str):
                continue
            symbol = normalize_ticker(item)
            if symbol and symbol not in tickers:
                tickers.append(symbol)

        return tickers or list(self._default_tickers)

    def _save(self) -> None:
        try:
            self.store.set_item(STORAGE_KEY_WATCHLIST, json.dumps(self._tickers))
        except StorageError as e:
            logger.warning(f"Failed to save watchlist to storage: {e}")

    # ------------------------------------------------------------------
    # 读取
    # ------------------------------------------------------------------

    @property
    def tickers(self) -> List[str]:
        return list(self._tickers)

    @property
    def selected(self) -> List[str]:
        return list(self._selected)

    def snapshot(self) -> WatchlistResponse:
        return WatchlistResponse(tickers=self.tickers, selected=self.selected)

    # ------------------------------------------------------------------
    # 变更
    # ------------------------------------------------------------------

    def add(self, symbol: str) -> bool:
        """
        添加关注项，追加到末尾

        Returns:
            bool: 是否真的添加（空输入或已存在返回 False）
        """
        symbol = normalize_ticker(symbol)
        if not symbol or symbol in self._tickers:
            return False

        self._tickers.append(symbol)
        self._save()
        logger.info(f"[OK] Added {symbol} to watchlist")
        return True

    def remove(self, symbol: str) -> bool:
        """
        删除关注项，同时从选中集合移除

        Returns:
            bool: 是否真的删除
        """
        symbol = normalize_ticker(symbol)
        if symbol not in self._tickers:
            return False

        self._tickers = [t for t in self._tickers if t != symbol]
        self._selected.pop(symbol, None)
        self._save()
        logger.info(f"[OK] Removed {symbol} from watchlist")
        return True

    def toggle_selection(self, symbol: str) -> bool:
        """
        切换选中状态，不影响关注列表

        Returns:
            bool: 切换后是否选中

        Raises:
            TickerNotInWatchlist: 代码不在关注列表中
        """
        symbol = normalize_ticker(symbol)
        if symbol not in self._tickers:
            raise TickerNotInWatchlist(symbol)

        if symbol in self._selected:
            del self._selected[symbol]
            return False
        self._selected[symbol] = None
        return True
