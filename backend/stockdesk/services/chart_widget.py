"""
TradingView 图表嵌入

图表完全交给 TradingView 的 symbol-overview 脚本渲染，这里只生成配置和嵌入片段。
"""

import html
import json

from stockdesk.repositories.watchlist_repository import normalize_ticker

WIDGET_SCRIPT_SRC = "https://s3.tradingview.com/external-embedding/embed-widget-symbol-overview.js"

_DATE_RANGES = ["1d|1", "5d|15", "1m|30", "3m|60", "12m|1D", "60m|1W", "all|1M"]


def widget_theme(dark_mode: bool) -> str:
    return "dark" if dark_mode else "light"


def build_widget_config(symbol: str, dark_mode: bool) -> dict:
    """symbol-overview 小部件配置"""
    symbol = normalize_ticker(symbol)
    return {
        "symbols": [[symbol, f"{symbol}|1D"]],
        "chartOnly": False,
        "width": "100%",
        "height": "100%",
        "locale": "en",
        "colorTheme": widget_theme(dark_mode),
        "autosize": True,
        "showVolume": True,
        "showMA": False,
        "hideDateRanges": False,
        "hideMarketStatus": False,
        "hideSymbolLogo": False,
        "scalePosition": "right",
        "scaleMode": "Normal",
        "fontFamily": "-apple-system, BlinkMacSystemFont, Trebuchet MS, Roboto, Ubuntu, sans-serif",
        "fontSize": "10",
        "noTimeScale": False,
        "valuesTracking": "1",
        "changeMode": "price-and-percent",
        "chartType": "candlesticks",
        "maLineColor": "#2962FF",
        "maLineWidth": 1,
        "maLength": 9,
        "lineWidth": 2,
        "lineType": 0,
        "dateRanges": list(_DATE_RANGES),
    }


def render_widget_html(symbol: str, dark_mode: bool) -> str:
    """可直接插入页面的嵌入片段"""
    config = json.dumps(build_widget_config(symbol, dark_mode))
    # 防止配置里出现 </script>
    config = config.replace("</", "<\\/")
    return (
        '<div class="tradingview-widget-container">'
        '<div class="tradingview-widget-container__widget"></div>'
        f'<script type="text/javascript" src="{html.escape(WIDGET_SCRIPT_SRC)}" async>'
        f"{config}"
        "</script>"
        "</div>"
    )
