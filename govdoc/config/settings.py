"""
Application Settings.

All configuration comes from .env / environment variables.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    # --- App ---
    env: str = "development"
    debug: bool = True
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    # --- Database ---
    database_url: str = "sqlite:///govdoc.db"

    # --- Decision Policy ---
    auto_approve_threshold: int = 85
    review_threshold: int = 70
    tamper_override_enabled: bool = True
    tamper_override_risks: list[str] = ["HIGH", "CRITICAL"]

    # --- Audit Queue / Batch ---
    audit_queue_default_take: int = 50
    audit_queue_max_take: int = 100
    batch_max_actions: int = 100
    batch_max_workers: int = 4
    reviewer_role: str = "MAKER"

    # --- Forensic Cache ---
    forensic_cache_enabled: bool = True
    forensic_cache_ttl_minutes: int = 60

    # --- Timeouts (seconds) ---
    analysis_timeout_seconds: float = 300.0
    issuance_timeout_seconds: float = 60.0
    health_timeout_seconds: float = 5.0

    # --- LLM (Gemini) ---
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    llm_enabled: bool = True

    # --- Issuance ---
    issuer_wallet_address: str = ""
    solana_cluster: str = "devnet"
    attestation_schema_id: str = "schema_document_verification"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    """Settings singleton."""
    return Settings()
