"""
Credential Repository

API Key 存取层

优先级（逐字段）:
    本次运行中用户设置的值 > 已持久化的值 > 环境变量默认值 > 空字符串

只有非空值才会写入存储；存储读写失败记录日志后忽略。
"""

import logging
from typing import Dict, Optional

from stockdesk.core.config import Settings
from stockdesk.core.constants import STORAGE_KEY_CHAT_API_KEY, STORAGE_KEY_VISION_API_KEY
from stockdesk.core.exceptions import StorageError
from stockdesk.core.storage import KeyValueStore
from stockdesk.schemas.dashboard import Credentials, CredentialsView

logger = logging.getLogger(__name__)

# 字段 -> 存储键
_STORAGE_KEYS = {
    "chat_api_key": STORAGE_KEY_CHAT_API_KEY,
    "vision_api_key": STORAGE_KEY_VISION_API_KEY,
}


class CredentialRepository:
    """API Key Repository"""

    def __init__(self, store: KeyValueStore, config: Settings):
        self.store = store
        self._env_defaults = {
            "chat_api_key": config.PERPLEXITY_API_KEY or "",
            "vision_api_key": config.GEMINI_API_KEY or "",
        }
        self._session: Dict[str, str] = {}

    def _read_persisted(self, field: str) -> Optional[str]:
        try:
            return self.store.get_item(_STORAGE_KEYS[field])
        except StorageError as e:
            logger.warning(f"[WARN] Cannot read API keys from storage: {e}")
            return None

    def _resolve(self, field: str) -> str:
        if field in self._session:
            return self._session[field]
        persisted = self._read_persisted(field)
        if persisted:
            return persisted
        return self._env_defaults[field]

    def get(self) -> Credentials:
        """按优先级合成当前 Key"""
        return Credentials(
            chat_api_key=self._resolve("chat_api_key"),
            vision_api_key=self._resolve("vision_api_key"),
        )

    def set(self, chat_api_key: Optional[str] = None, vision_api_key: Optional[str] = None) -> Credentials:
        """
        更新 Key

        Args:
            chat_api_key: Perplexity Key，None 表示不修改
            vision_api_key: Gemini Key，None 表示不修改

        Returns:
            Credentials: 更新后的 Key
        """
        updates = {"chat_api_key": chat_api_key, "vision_api_key": vision_api_key}
        for field, value in updates.items():
            if value is None:
                continue
            value = value.strip()
            self._session[field] = value
            if not value:
                continue
            try:
                self.store.set_item(_STORAGE_KEYS[field], value)
            except StorageError as e:
                logger.warning(f"[WARN] Cannot save API keys to storage: {e}")
        return self.get()

    def masked(self) -> CredentialsView:
        """只返回末四位，完整 Key 不出后端"""
        creds = self.get()
        return CredentialsView(
            chat_api_key_set=bool(creds.chat_api_key),
            chat_api_key_hint=_hint(creds.chat_api_key),
            vision_api_key_set=bool(creds.vision_api_key),
            vision_api_key_hint=_hint(creds.vision_api_key),
        )


def _hint(key: str) -> str:
    if not key:
        return ""
    return f"...{key[-4:]}" if len(key) > 4 else "*" * len(key)
