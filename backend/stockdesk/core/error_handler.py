"""
Error Handling Utilities
统一的错误处理辅助函数
"""
import logging
from typing import Any, Dict, Union

from fastapi import HTTPException, status

from stockdesk.core.exceptions import (
    OperationBusyError,
    PortfolioPipelineError,
    StockDeskError,
    TickerNotInWatchlist,
    ValidationError,
)

logger = logging.getLogger(__name__)

# 领域异常 -> HTTP 状态码
_STATUS_MAP = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (TickerNotInWatchlist, status.HTTP_404_NOT_FOUND),
    (OperationBusyError, status.HTTP_409_CONFLICT),
    (PortfolioPipelineError, status.HTTP_502_BAD_GATEWAY),
)


def create_error_response(status_code: int, detail: Union[str, Dict[str, Any]]) -> HTTPException:
    """
    创建统一的错误响应

    Args:
        status_code: HTTP状态码
        detail: 错误详情

    Returns:
        HTTPException实例
    """
    return HTTPException(status_code=status_code, detail=detail)


def to_http_exception(error: StockDeskError) -> HTTPException:
    """把领域异常转换为 HTTPException"""
    for exc_type, status_code in _STATUS_MAP:
        if isinstance(error, exc_type):
            return create_error_response(status_code, str(error))

    logger.error(f"Unhandled domain error: {error}")
    return create_error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, f"Internal server error: {error}")
