from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"
    gemini_configured: bool = False
    requirement_extractor: bool = False
    embedder: bool = False
    soft_scorer: bool = False


class RebuildResponse(BaseModel):
    ok: bool
    rebuilt: int
    errors: list[str] = []
    duration_ms: int = 0
    message: str = ""
