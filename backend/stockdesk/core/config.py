"""
Application Configuration

从环境变量加载配置，使用 Pydantic Settings 进行验证
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置类"""

    model_config = SettingsConfigDict(
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # --------------------------------------------
    # Environment 环境
    # --------------------------------------------
    ENV: str = "development"
    DEBUG: bool = True

    # --------------------------------------------
    # AI Model Services (默认 Key，可被用户设置覆盖)
    # --------------------------------------------
    PERPLEXITY_API_KEY: str | None = None
    GEMINI_API_KEY: str | None = None

    CHAT_API_URL: str = "https://api.perplexity.ai/chat/completions"
    CHAT_MODEL: str = "sonar-pro"
    VISION_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"
    VISION_MODEL: str = "gemini-2.0-flash-exp"

    BRIEFING_TEMPERATURE: float = 0.3
    AUDIT_TEMPERATURE: float = 0.1

    # --------------------------------------------
    # API Configuration
    # --------------------------------------------
    # 请求超时配置（秒）
    API_TIMEOUT_DEFAULT: int = 60
    API_TIMEOUT_VISION: int = 90

    # --------------------------------------------
    # Storage 本地持久化 (对应浏览器 localStorage)
    # --------------------------------------------
    STORAGE_BACKEND: str = "file"  # file / memory
    STORAGE_PATH: str = "data/local_storage.json"

    # --------------------------------------------
    # Logging
    # --------------------------------------------
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str = "logs/stockdesk.log"

    # --------------------------------------------
    # Application Settings
    # --------------------------------------------
    PORT: int = 8000
    HOST: str = "0.0.0.0"
    CORS_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173"
    DEFAULT_LANGUAGE: str = "ZH"

    @property
    def cors_origins_list(self) -> list[str]:
        """将 CORS_ORIGINS 字符串转换为列表"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    def vision_endpoint(self, model: str | None = None) -> str:
        """拼接 Gemini generateContent 端点（不含 key）"""
        return f"{self.VISION_API_BASE}/models/{model or self.VISION_MODEL}:generateContent"


# 全局配置实例
settings = Settings()
