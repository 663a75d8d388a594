# -*- coding: utf-8 -*-
"""
Operation Guard - 忙碌标记

同一类操作（简报生成、持仓分析）同时只允许一个在跑；
第二次触发直接拒绝，不排队，也不取消正在进行的请求。
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from stockdesk.core.exceptions import OperationBusyError


class OperationGuard:
    """单操作忙碌标记"""

    def __init__(self, operation: str):
        self.operation = operation
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        """
        占用忙碌标记

        Raises:
            OperationBusyError: 已有同类操作在进行
        """
        # 检查与加锁之间没有 await，单事件循环下不会被插队
        if self._lock.locked():
            raise OperationBusyError(self.operation)
        async with self._lock:
            yield
