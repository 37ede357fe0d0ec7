"""
Banco de Horas - Routers Package

FastAPI route handlers.

Routers:
- banco_horas: calculations, adjustments, version history and segmented view
"""

from app.routers import banco_horas

__all__ = ["banco_horas"]
