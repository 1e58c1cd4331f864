from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # DB
    DATABASE_URL: str = "sqlite:///./storefront.db"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Pricing
    DEFAULT_CURRENCY: str = "INR"
    SLOW_RESOLUTION_MS: float = 30.0

    # Flash sale status sweep
    FLASH_SALE_SWEEP_ENABLED: bool = True
    FLASH_SALE_SWEEP_SECONDS: int = 60

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
