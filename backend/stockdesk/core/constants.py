"""
应用常量定义

集中管理硬编码的值，提高代码可维护性
"""

# ============================================
# API
# ============================================
API_PREFIX = "/api/v1"

# ============================================
# 持久化 Key (沿用前端 localStorage 的键名)
# ============================================
STORAGE_KEY_WATCHLIST = "pplx_watchlist"
STORAGE_KEY_CHAT_API_KEY = "pplx_api_key"
STORAGE_KEY_VISION_API_KEY = "gemini_api_key"

# ============================================
# Watchlist 默认值
# ============================================
DEFAULT_TICKERS = ["NVDA", "TSLA", "PLTR", "AMD", "ORCL", "AVGO", "PYPL", "SPY"]
DEFAULT_SELECTION = ["NVDA"]

# ============================================
# 时间基准
# ============================================
WALL_STREET_TZ = "America/New_York"

# ============================================
# 简报 JSON 字段 (模型必须按此 schema 返回)
# ============================================
BRIEFING_FIELDS = [
    "symbol",
    "sentiment_score",
    "support_level_short",
    "resistance_level_short",
    "major_news",
    "market_factors",
    "technical_analysis_detailed",
    "tomorrow_forecast",
    "week_ahead_forecast",
    "future_outlook",
    "conclusion",
]

# ============================================
# OCR 降级：粗略识别股票代码
# ============================================
TICKER_TOKEN_PATTERN = r"\b[A-Z]{2,5}\b"
DEFAULT_IMAGE_MIME = "image/jpeg"

# ============================================
# 错误信息
# ============================================
ERR_MISSING_CHAT_KEY = {
    "ZH": "請先在設定中輸入 Perplexity API Key（pplx-...）",
    "EN": "Please enter your Perplexity API key (pplx-...) in settings first.",
}
ERR_EMPTY_SELECTION = {
    "ZH": "請至少選擇一支股票",
    "EN": "Please select at least one ticker.",
}
ERR_BRIEFING_FAILED = {
    "ZH": "無法取得分析資料，請檢查 API Key 或稍後再試。",
    "EN": "Unable to fetch analysis. Check your API key or try again later.",
}
ERR_MISSING_PORTFOLIO_KEYS = {
    "ZH": "缺少 API Key，請先至設定輸入 Google Gemini 與 Perplexity API Key。",
    "EN": "Missing API key. Enter both the Google Gemini and Perplexity API keys in settings.",
}
ERR_NO_IMAGES = {
    "ZH": "請先上傳至少一張持倉截圖。",
    "EN": "Upload at least one portfolio screenshot first.",
}
ERR_NO_HOLDINGS = {
    "ZH": "Gemini 無法識別圖片中的持倉數據。",
    "EN": "No holdings recognized in the uploaded images.",
}
ERR_VISION_MODEL_NOT_FOUND = {
    "ZH": "模型找不到 (404): 請確認 API 狀態",
    "EN": "Vision model not found (404): check the API status.",
}

# ============================================
# 进度提示
# ============================================
STEP_EXTRACTING = {
    "ZH": "🔍 Gemini 正在讀取持倉表格數據 (成本/數量/損益)...",
    "EN": "🔍 Gemini is reading the holdings table (cost / quantity / gain)...",
}
STEP_AUDITING = {
    "ZH": "🚀 識別出 {count} 檔持倉 (含成本分析)。正在聯網獲取即時報價...",
    "EN": "🚀 Recognized {count} positions (with cost analysis). Fetching live quotes...",
}
