"""API response models."""

from typing import List, Optional
from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Response model for health check."""
    ok: bool
    modules: List[str]
    detail: Optional[str] = None
