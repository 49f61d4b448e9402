from __future__ import annotations
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional, List
from dotenv import load_dotenv
load_dotenv()  # populates os.environ from .env

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # LLM (extraction + canonical resolver). Missing key only fails when a client is built.
    openai_api_key: Optional[str] = Field(None)
    openai_base_url: Optional[str] = Field(None)
    openai_model_extract: str = Field("gpt-4o-mini")
    openai_model_canonicalize: str = Field("gpt-4o-mini")

    # Matching
    canonical_confidence_threshold: float = Field(0.75, ge=0, le=1)
    candidate_k: int = Field(6, ge=1)

    # Storage
    data_dir: str = Field("data")
    state_file: str = Field("data/planner_state.json")
    catalog_file: str = Field("data/catalog.json")

    # Logging
    log_level: str = Field("INFO")
    json_logs: bool = Field(False)

    cors_allow_origins: List[str] = Field(default_factory=lambda: ["http://127.0.0.1:8001"])
