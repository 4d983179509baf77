"""Client configuration via environment variables (SSESTREAM_ prefix) or defaults."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class ClientConfig(BaseSettings):
    reconnect_delay_ms: int = 3000
    connect_timeout: float = 30.0
    follow_redirects: bool = True
    log_level: str = "INFO"
    json_logs: bool = False

    model_config = {"env_prefix": "SSESTREAM_"}
