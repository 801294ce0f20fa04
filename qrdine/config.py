from pydantic_settings import BaseSettings, SettingsConfigDict
class Settings(BaseSettings):
    APP_ENV: str = "dev"
    APP_SECRET: str = "change-me"
    DB_URL: str = "sqlite:///./qrdine.db"
    JWT_ISS: str = "qrdine"
    TZ: str = "UTC"
    LOG_LEVEL: str = "INFO"

    # pricing
    TAX_RATE: float = 0.16
    CURRENCY_LABEL: str = "Rs."

    # sessions
    SESSION_HOURS: int = 20
    LOGIN_STAMP_TIMEOUT_S: float = 3.0

    # customer tracking fallback
    TRACKING_POLL_S: float = 3.0

    # blob store
    MEDIA_ROOT: str = "./media"
    MEDIA_URL: str = "/media"

    CART_BACKEND: str = "db"  # db | memory
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
settings = Settings()
