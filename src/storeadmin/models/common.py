"""
storeadmin/models/common.py - Базовые типы.
"""

from pydantic import BaseModel


class AdminBase(BaseModel):
    """Базовая Pydantic-модель для схем StoreAdmin; строки не нормализуются."""
