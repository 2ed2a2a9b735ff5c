from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "AllocatrX"
    debug: bool = True
    lp_backend: str = "SCIP"  # integer-capable engine
    lp_continuous_backend: str = "GLOP"
    lp_integer: bool = True
    lp_time_limit_seconds: int = 10
    completion_policy: str = "weighted"
    completion_significant_digits: int = 3


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
