from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "postgresql+asyncpg://craftmatch:craftmatch_dev@db:5432/craftmatch"

    # Auth provider (managed backend)
    AUTH_PROVIDER_URL: str = "http://localhost:54321"
    AUTH_PROVIDER_ANON_KEY: str = "mock_anon_key"
    AUTH_PROVIDER_SERVICE_KEY: str = "mock_service_key"
    JWT_SECRET: str = "dev-jwt-secret-not-for-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = "authenticated"
    ACCESS_COOKIE_NAME: str = "sb-access-token"
    REFRESH_COOKIE_NAME: str = "sb-refresh-token"
    ACCESS_COOKIE_MAX_AGE: int = 60 * 60 * 24 * 7
    REFRESH_COOKIE_MAX_AGE: int = 60 * 60 * 24 * 30
    ALLOWED_ORIGINS: str = "*"

    # AI Provider (OpenAI-compatible, e.g. OpenRouter)
    AI_API_KEY: str = "mock_ai_key"
    AI_BASE_URL: str = "https://openrouter.ai/api/v1"
    AI_PROMPT_MODEL: str = "openai/gpt-4o-mini"
    AI_IMAGE_MODEL: str = "google/gemini-2.5-flash-image-preview"
    AI_PROMPT_TIMEOUT_SECONDS: float = 30.0
    AI_IMAGE_TIMEOUT_SECONDS: float = 120.0

    # Image generation limits
    MAX_FREE_GENERATIONS: int = 10
    IMAGE_GENERATION_RATE_LIMIT: int = 5
    IMAGE_GENERATION_RATE_WINDOW_SECONDS: int = 300

    # Storage
    STORAGE_BACKEND: str = "local"
    STORAGE_LOCAL_PATH: str = "/app/storage"
    STORAGE_PUBLIC_PREFIX: str = "/storage"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    # App
    APP_ENV: str = "development"
    APP_URL: str = "http://localhost:8000"
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"


settings = Settings()
