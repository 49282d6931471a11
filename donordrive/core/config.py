from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    jwt_secret: str = "dev"
    jwt_alg: str = "HS256"
    access_ttl_days: int = 7
    reset_ttl_min: int = 60

    # USE_MONGO=0 keeps everything in process memory (tests, demos)
    use_mongo: bool = False
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "donordrive"

    public_base_url: Optional[str] = None
    leaderboard_limit: int = 50

    geocoder_url: str = "https://nominatim.openstreetmap.org/reverse"
    admin_contact: str = "mailto:admin@example.com"

    log_level: str = "INFO"
    log_json: bool = True

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
