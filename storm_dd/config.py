from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Language model (OpenAI-compatible chat completions, DeepSeek by default)
    llm_api_key: str = ""
    llm_base_url: str = "https://api.deepseek.com"
    llm_model: str = "deepseek-chat"
    planner_model: str = ""  # optional override for query planning only
    llm_temperature: float = 0.2
    llm_max_tokens: int = 8000
    planner_max_tokens: int = 1024
    structured_output_mode: str = "json_object"  # json_object | json_schema

    # Tavily
    tavily_api_key: str = ""
    search_depth: str = "advanced"
    search_max_results: int = 5
    search_include_answer: bool = True
    search_max_parallel_requests: int = 4
    search_min_key_length: int = 5

    # Document excerpts
    pdf_max_pages: int = 15
    excerpt_max_chars: int = 50000
    planner_excerpt_chars: int = 3000

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


@dataclass(frozen=True)
class PipelineConfig:
    """Everything one pipeline invocation needs, credentials included.

    The pipeline only ever reads this record, so tests and API callers can
    hand in their own keys without touching process-wide settings.
    """

    llm_api_key: str
    llm_base_url: str
    llm_model: str
    planner_model: str
    llm_temperature: float
    llm_max_tokens: int
    planner_max_tokens: int
    structured_output_mode: str
    tavily_api_key: str
    search_depth: str
    search_max_results: int
    search_include_answer: bool
    search_max_parallel_requests: int
    search_min_key_length: int
    pdf_max_pages: int
    excerpt_max_chars: int
    planner_excerpt_chars: int

    @classmethod
    def from_settings(cls, source: Settings, **overrides: Any) -> "PipelineConfig":
        # Empty overrides (e.g. blank form fields) keep the configured value.
        updates = {key: value for key, value in overrides.items() if value not in (None, "")}
        llm_model = updates.pop("llm_model", source.llm_model)
        planner_override = (source.planner_model or "").strip()
        config = cls(
            llm_api_key=source.llm_api_key.strip(),
            llm_base_url=source.llm_base_url.strip() or "https://api.deepseek.com",
            llm_model=llm_model,
            planner_model=planner_override or llm_model,
            llm_temperature=float(source.llm_temperature),
            llm_max_tokens=max(int(source.llm_max_tokens), 1),
            planner_max_tokens=max(int(source.planner_max_tokens), 1),
            structured_output_mode=str(source.structured_output_mode).lower().strip(),
            tavily_api_key=source.tavily_api_key.strip(),
            search_depth=source.search_depth,
            search_max_results=max(int(source.search_max_results), 1),
            search_include_answer=bool(source.search_include_answer),
            search_max_parallel_requests=max(int(source.search_max_parallel_requests), 1),
            search_min_key_length=max(int(source.search_min_key_length), 0),
            pdf_max_pages=max(int(source.pdf_max_pages), 1),
            excerpt_max_chars=max(int(source.excerpt_max_chars), 1),
            planner_excerpt_chars=max(int(source.planner_excerpt_chars), 1),
        )
        return replace(config, **updates) if updates else config


settings = Settings()
