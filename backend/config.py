import os
from pydantic_settings import BaseSettings


def _parse_cors_origins() -> list[str] | None:
    """Parse CORS_ORIGINS env var as comma-separated string or JSON list."""
    raw = os.environ.get("CORS_ORIGINS")
    if not raw:
        return None
    if raw.startswith("["):
        import json
        return json.loads(raw)
    return [o.strip() for o in raw.split(",") if o.strip()]


class Settings(BaseSettings):
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    embedding_model: str = "text-embedding-004"
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]
    debug: bool = False

    # Scoring
    scoring_profile: str = "A"  # "A" (agency) | "C" (enterprise)
    exclude_internships: bool = True

    # Calibration
    min_reliable_samples: int = 30
    calibration_bucket_step: int = 5
    calibration_cache_ttl_s: float = 3600.0

    # External calls and batch throttling
    external_call_timeout_s: float = 20.0
    batch_concurrency: int = 5
    requests_per_second: float = 5.0
    inter_batch_delay_ms: int = 200
    score_rate_limit: str = "60/minute"
    max_batch_pairs: int = 500

    # Text limits
    embedding_cache_ttl_s: float = 24 * 3600.0
    max_embed_text_len: int = 6000
    max_resume_text_len: int = 50000
    min_jd_length: int = 50

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "protected_namespaces": ("settings_",)}


_cors_override = _parse_cors_origins()
settings = Settings(**{"cors_origins": _cors_override} if _cors_override else {})
