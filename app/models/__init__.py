"""
Banco de Horas - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from app.models.base import BaseModel, ImmutableModel, TimestampMixin, CreatedAtMixin
from app.models.banco_horas import (
    EmpresaCliente,
    TaxaCliente,
    BancoHorasConsumo,
    BancoHorasReajuste,
    BancoHorasAlocacao,
    BancoHorasCalculo,
    BancoHorasVersao,
    TipoMudanca,
    TipoReajuste,
)

__all__ = [
    "BaseModel",
    "ImmutableModel",
    "TimestampMixin",
    "CreatedAtMixin",
    "EmpresaCliente",
    "TaxaCliente",
    "BancoHorasConsumo",
    "BancoHorasReajuste",
    "BancoHorasAlocacao",
    "BancoHorasCalculo",
    "BancoHorasVersao",
    "TipoMudanca",
    "TipoReajuste",
]
