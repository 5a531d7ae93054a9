"""
Application configuration from environment variables.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class AppConfig(BaseSettings):
    # Initial upstream target. Empty means path mode answers with an error
    # until a payload request sets one.
    okproxy_url: str = ""
    okproxy_path_prefix: str = "/forward"
    okproxy_payload_path: str = "/payload"
    # Upstream timeout in seconds
    okproxy_timeout: float = 30.0
    okproxy_host: str = "127.0.0.1"
    okproxy_port: int = 8000
    okproxy_log_level: str = "DEBUG"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache
def get_config() -> AppConfig:
    return AppConfig()
