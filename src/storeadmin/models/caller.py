"""
storeadmin/models/caller.py - Контекст вызывающей стороны.
"""

from typing import Any

from pydantic import BaseModel, Field


class CallerContext(BaseModel):
    """Аутентифицированный принципал, приложенный к вызову."""
    uid: str
    token: dict[str, Any] = Field(default_factory=dict, description="Decoded token claims")

    @property
    def has_admin_claim(self) -> bool:
        return self.token.get("admin") is True
