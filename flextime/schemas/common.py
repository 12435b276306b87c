"""
Schemas shared by every router: the error envelope and the health probe.
"""
from typing import Any, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Envelope for all 4xx/5xx responses; branch on `code`, show `message`."""
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class HealthResponse(BaseModel):
    status: str
    store: str
    env: str
