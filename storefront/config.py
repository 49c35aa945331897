# storefront/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict

GATEWAY_URLS = {
    "sandbox": "https://cybqa.pesapal.com/pesapalv3",
    "production": "https://pay.pesapal.com/v3",
}


class Settings(BaseSettings):
    AUTH_SECRET_KEY: str
    AUTH_TOKEN_EXPIRE_MINUTES: int = 24 * 60
    AUTH_LOGIN: str = "admin"
    AUTH_PASSWORD_HASH: str = ""       # passlib sha256_crypt

    SESSION_COOKIE_NAME: str = "admin-session"
    SESSION_COOKIE_SECURE: bool = False
    ADMIN_PREFIX: str = "/admin"
    ADMIN_LOGIN_PATH: str = "/admin/login"

    DATABASE_URL: str = "sqlite+aiosqlite:///./storefront.db"

    GATEWAY_ENVIRONMENT: str = "sandbox"
    GATEWAY_BASE_URL: str = ""         # empty -> URL for GATEWAY_ENVIRONMENT
    GATEWAY_CONSUMER_KEY: str = ""
    GATEWAY_CONSUMER_SECRET: str = ""
    GATEWAY_TIMEOUT_SECONDS: float = 10.0

    LOG_DIR: str = "log"
    LOG_PRINT: str = "1"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

    @property
    def gateway_base_url(self) -> str:
        if self.GATEWAY_BASE_URL:
            return self.GATEWAY_BASE_URL.rstrip("/")
        return GATEWAY_URLS.get(self.GATEWAY_ENVIRONMENT, "")


settings = Settings()
