"""
StockDesk Backend

关注列表、AI 个股简报、持仓截图诊断
"""

__version__ = "1.0.0"
