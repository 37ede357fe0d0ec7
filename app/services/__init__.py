"""
Banco de Horas - Services Package

Business logic services.
"""

from app.services.banco_horas import (
    ReajusteService,
    SegmentacaoService,
    VersionamentoService,
    calcular_banco_horas,
)

__all__ = [
    "ReajusteService",
    "SegmentacaoService",
    "VersionamentoService",
    "calcular_banco_horas",
]
