import os
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    PROJECT_NAME: str = "CAMPUS RENTALS LISTING AND LIFECYCLE SERVICE"
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL", "sqlite+aiosqlite:///./campus_rentals.db"
    )
    DB_ECHO: bool = False

    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "change-me-to-a-long-random-secret")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
    ACCESS_EXPIRE_MINUTES: int = 30

    UPSTASH_REDIS_URL: str | None = os.getenv("UPSTASH_REDIS_REST_URL")
    UPSTASH_REDIS_TOKEN: str | None = os.getenv("UPSTASH_REDIS_REST_TOKEN")
    QUERY_CACHE_TTL: int = 30

    RABBITMQ_URL: str = os.getenv("RABBITMQ_URL", "")
    RABBITMQ_MAIN_EXCHANGE: str = "rental_events"
    RABBITMQ_DLX: str = "dead_letter_exchange"
    RABBITMQ_DLX_QUEUE: str = "dead_letter_queue"

    # Campus A is the main campus, campus B the secondary one.
    CAMPUS_A_LAT: float = -22.4126
    CAMPUS_A_LON: float = -42.9665
    CAMPUS_B_LAT: float = -22.4315
    CAMPUS_B_LON: float = -42.9780

    PAGE_SIZE: int = 12
    MAX_LISTING_IMAGES: int = 8

    ALLOWED_ORIGINS_RAW: str = os.getenv("ALLOWED_ORIGINS", "")
    LOG_LEVEL: str = "INFO"

    @property
    def ALLOWED_ORIGINS(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS_RAW.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        extra = "ignore"
        case_sensitive = False


settings = Settings()
