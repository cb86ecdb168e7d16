from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "projectpush"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    APP_DOMAIN: str = "example.com"
    APP_DATABASE_DSN: str = "sqlite:////tmp/projectpush.db"
    REDIS_URL: str = "redis://localhost:6379"

    # Authentication (tokens are issued by the identity service)
    JWT_SECRET: str = "dev-only-secret-change-me-in-production"
    JWT_ALGORITHM: str = "HS256"

    # Push gateway
    PUSH_GATEWAY_URL: str = "https://exp.host/--/api/v2/push/send"
    PUSH_GATEWAY_ACCESS_TOKEN: str = ""
    PUSH_GATEWAY_BATCH_SIZE: int = 100  # documented gateway maximum
    PUSH_GATEWAY_TIMEOUT_SECONDS: float = 15.0
    PUSH_GATEWAY_MAX_WORKERS: int = 6

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8081"

    @property
    def version(self) -> str:
        return self.APP_VERSION


settings = Settings()
