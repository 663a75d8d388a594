"""
Local Key-Value Storage

对应前端 localStorage 的后端持久化层

关键特性:
- 只存字符串值，键名固定（见 core.constants）
- JsonFileStore: 单个 JSON 文件保存全部键值，写入时先写临时文件再替换
- MemoryStore: 进程内存储，用于测试和 STORAGE_BACKEND=memory
- 读写失败统一抛出 StorageError，由调用方记录日志后吞掉
"""

import json
import logging
import os
import threading
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Protocol

from stockdesk.core.config import Settings, settings
from stockdesk.core.exceptions import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """localStorage 风格的键值存储接口"""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class MemoryStore:
    """进程内键值存储"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """
    JSON 文件键值存储

    文件内容是一个 {key: string} 对象。文件不存在视为空存储；
    文件损坏时读取抛出 StorageError。
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupted storage file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Storage file {self.path} is not a JSON object")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: Dict[str, str]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Cannot write {self.path}: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            try:
                data = self._read_all()
            except StorageError as e:
                # 损坏的文件直接覆盖
                logger.warning(f"[WARN] {e}, rewriting storage file")
                data = {}
            data[key] = value
            self._write_all(data)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if key in data:
                del data[key]
                self._write_all(data)


def create_store(config: Settings) -> KeyValueStore:
    """根据配置创建存储实例"""
    if config.STORAGE_BACKEND == "memory":
        return MemoryStore()
    return JsonFileStore(config.STORAGE_PATH)


@lru_cache(maxsize=1)
def get_store() -> KeyValueStore:
    """
    获取全局键值存储实例

    Returns:
        KeyValueStore: 按 settings.STORAGE_BACKEND 创建的存储
    """
    return create_store(settings)
