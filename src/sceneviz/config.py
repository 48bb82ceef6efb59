"""Configuration for sceneviz, loaded from environment variables."""

from __future__ import annotations

from enum import Enum

from pydantic_settings import BaseSettings


class LLMProviderName(str, Enum):
    gemini = "gemini"
    claude = "claude"


class SceneVizConfig(BaseSettings):
    model_config = {"env_prefix": "SCENEVIZ_"}

    server_name: str = "sceneviz"
    server_host: str = "0.0.0.0"
    server_port: int = 8000

    llm_provider: LLMProviderName = LLMProviderName.gemini
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    claude_api_key: str = ""
    claude_model: str = "claude-sonnet-4-5"
    llm_max_retries: int = 3
    generation_timeout: float = 30.0
    temperature: float = 0.15
    max_output_tokens: int = 2048
    complex_output_tokens: int = 2800

    canvas_width: int = 800
    canvas_height: int = 500
    background: str = "#fffaf0"
    spring_step_ms: float = 16.0
    default_fps: int = 30
    particle_seed: int | None = None
    loop_playback: bool = True

    keepalive_seconds: float = 15.0
    subscriber_queue_size: int = 100

    log_level: str = "INFO"
