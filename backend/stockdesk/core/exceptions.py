# -*- coding: utf-8 -*-
"""
Custom Exceptions for StockDesk
"""


class StockDeskError(Exception):
    """Base exception for StockDesk"""
    pass


class ValidationError(StockDeskError):
    """Request rejected before any network call"""
    pass


class BriefingValidationError(ValidationError):
    """Missing chat key or empty ticker selection"""
    pass


class PortfolioValidationError(ValidationError):
    """Missing images or API keys for portfolio analysis"""
    pass


class TickerNotInWatchlist(StockDeskError):
    """Ticker is not part of the watchlist"""

    def __init__(self, symbol: str):
        super().__init__(f"{symbol} is not in the watchlist")
        self.symbol = symbol


class OperationBusyError(StockDeskError):
    """The same operation is already running"""

    def __init__(self, operation: str):
        super().__init__(f"{operation} is already in progress")
        self.operation = operation


class LLMAPIError(StockDeskError):
    """External AI API returned a non-success status"""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LLMResponseError(StockDeskError):
    """External AI API returned a body we could not read"""
    pass


class PortfolioPipelineError(StockDeskError):
    """Portfolio analysis aborted; carries the single user-facing message"""
    pass


class StorageError(StockDeskError):
    """Local key-value storage read/write failure"""
    pass
