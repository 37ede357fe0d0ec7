"""
Banco de Horas - Ledger Models

Models for the contracted hours bank of client companies:
- Company contract configuration and excess rates
- Monthly consumption imported from usage tracking
- Manual adjustments (reajustes)
- Immutable monthly calculations, one row per version
- Version history with before/after snapshots
- Proportional allocations for segmented reporting

Quantities are stored as integers: minutes in the *_horas columns and ticket
counts in the *_tickets columns. Only the columns of the company's billing
mode are filled.
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional
from enum import Enum as PyEnum

from sqlalchemy import (
    String, Text, Boolean, Integer, Date, ForeignKey, Numeric, JSON, Uuid,
    Index, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel, ImmutableModel


class TipoMudanca(str, PyEnum):
    """Reason a new calculation version was recorded."""
    REAJUSTE = "reajuste"
    RECALCULO = "recalculo"
    CORRECAO = "correcao"


class TipoReajuste(str, PyEnum):
    """Direction of a manual adjustment."""
    ENTRADA = "entrada"  # adds to the bank
    SAIDA = "saida"      # removes from the bank


def _coluna_quantidade(modo: str, campo: str) -> str:
    return f"{campo}_{'horas' if modo == 'horas' else 'tickets'}"


class QuantidadesMixin:
    """Read/write quantity columns by logical field name and billing mode."""

    def obter_quantidade(self, campo: str, modo: str) -> int:
        valor = getattr(self, _coluna_quantidade(modo, campo))
        return valor or 0

    def definir_quantidade(self, campo: str, modo: str, unidades: int) -> None:
        setattr(self, _coluna_quantidade(modo, campo), unidades)


# ===========================================
# COMPANY CONFIGURATION
# ===========================================

class EmpresaCliente(BaseModel, QuantidadesMixin):
    """
    Client company with a contracted hours bank.
    """
    __tablename__ = "empresas_clientes"

    nome: Mapped[str] = mapped_column(String(255), nullable=False)
    modo_cobranca: Mapped[str] = mapped_column(String(10), nullable=False, default="horas")

    # Monthly contracted amount
    baseline_horas: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    baseline_tickets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Null falls back to the configured defaults
    percentual_repasse_mensal: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)

    # Apportionment window
    inicio_vigencia: Mapped[date] = mapped_column(Date, nullable=False)
    periodo_apuracao: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Special carry-over of a positive closing balance
    possui_repasse_especial: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ciclo_atual: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    ciclos_para_zerar: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    ativo: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("modo_cobranca IN ('horas', 'tickets')", name="modo_cobranca_valido"),
        CheckConstraint("periodo_apuracao BETWEEN 1 AND 12", name="periodo_apuracao_valido"),
        CheckConstraint("percentual_repasse_mensal BETWEEN 0 AND 100", name="percentual_repasse_valido"),
    )


class TaxaCliente(BaseModel):
    """Excess rate of a company, valid over a date range."""
    __tablename__ = "taxas_clientes"

    empresa_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("empresas_clientes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vigencia_inicio: Mapped[date] = mapped_column(Date, nullable=False)
    vigencia_fim: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    valor_hora_excedente: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2), nullable=True)
    valor_ticket_excedente: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2), nullable=True)


# ===========================================
# MONTHLY INPUTS
# ===========================================

class BancoHorasConsumo(BaseModel, QuantidadesMixin):
    """Consumption and requirement totals of a company for one month."""
    __tablename__ = "banco_horas_consumo"

    empresa_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("empresas_clientes.id", ondelete="CASCADE"), nullable=False
    )
    mes: Mapped[int] = mapped_column(Integer, nullable=False)
    ano: Mapped[int] = mapped_column(Integer, nullable=False)

    consumo_chamados_horas: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    consumo_chamados_tickets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    requerimentos_horas: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    requerimentos_tickets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint("empresa_id", "mes", "ano", name="uq_banco_horas_consumo_periodo"),
    )


class BancoHorasReajuste(BaseModel, QuantidadesMixin):
    """
    Manual adjustment of one month.

    The stored value is signed: entrada is positive, saida is negative.
    Adjustments are never deleted, only inactivated.
    """
    __tablename__ = "banco_horas_reajustes"

    empresa_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("empresas_clientes.id", ondelete="CASCADE"), nullable=False
    )
    mes: Mapped[int] = mapped_column(Integer, nullable=False)
    ano: Mapped[int] = mapped_column(Integer, nullable=False)

    valor_horas: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    valor_tickets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    tipo: Mapped[str] = mapped_column(String(10), nullable=False)
    observacao: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

    ativo: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    motivo_inativacao: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    inativado_por: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("ix_banco_horas_reajustes_periodo", "empresa_id", "ano", "mes"),
        CheckConstraint("tipo IN ('entrada', 'saida')", name="tipo_valido"),
    )


class BancoHorasAlocacao(BaseModel):
    """Share of a company's baseline reported as a separate segment."""
    __tablename__ = "banco_horas_alocacoes"

    empresa_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("empresas_clientes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    nome: Mapped[str] = mapped_column(String(255), nullable=False)
    percentual_baseline: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    ativo: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("percentual_baseline BETWEEN 0 AND 100", name="percentual_baseline_valido"),
    )


# ===========================================
# CALCULATIONS AND VERSIONS (APPEND-ONLY)
# ===========================================

class BancoHorasCalculo(ImmutableModel, QuantidadesMixin):
    """
    One version of the calculation of a company month.

    Rows are never updated. A recalculation appends a row with the same
    calculo_id and the next versao; the current calculation is the row with
    the highest versao.
    """
    __tablename__ = "banco_horas_calculos"

    calculo_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    empresa_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("empresas_clientes.id", ondelete="CASCADE"), nullable=False
    )
    mes: Mapped[int] = mapped_column(Integer, nullable=False)
    ano: Mapped[int] = mapped_column(Integer, nullable=False)
    versao: Mapped[int] = mapped_column(Integer, nullable=False)
    modo: Mapped[str] = mapped_column(String(10), nullable=False)

    baseline_horas: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    baseline_tickets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    repasse_mes_anterior_horas: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    repasse_mes_anterior_tickets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    saldo_a_utilizar_horas: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    saldo_a_utilizar_tickets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    consumo_chamados_horas: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    consumo_chamados_tickets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    requerimentos_horas: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    requerimentos_tickets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reajustes_horas: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reajustes_tickets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    consumo_total_horas: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    consumo_total_tickets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    saldo_horas: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    saldo_tickets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    repasse_horas: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    repasse_tickets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    excedente_horas: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    excedente_tickets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    valor_a_transportar_horas: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    valor_a_transportar_tickets: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Financial
    valor_a_faturar: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=Decimal("0.00"))
    taxa_hora_utilizada: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2), nullable=True)
    percentual_repasse_mensal: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    is_fim_periodo: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    observacao: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint("empresa_id", "mes", "ano", "versao", name="uq_banco_horas_calculos_periodo_versao"),
        UniqueConstraint("calculo_id", "versao", name="uq_banco_horas_calculos_calculo_versao"),
        Index("ix_banco_horas_calculos_periodo", "empresa_id", "ano", "mes"),
    )


class BancoHorasVersao(ImmutableModel):
    """
    Version history entry of a monthly calculation.

    Versions of one calculo_id form a gapless chain starting at 1. The
    unique constraint on (calculo_id, versao_nova) rejects any rewrite.
    """
    __tablename__ = "banco_horas_versoes"

    calculo_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    empresa_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("empresas_clientes.id", ondelete="CASCADE"), nullable=False
    )
    mes: Mapped[int] = mapped_column(Integer, nullable=False)
    ano: Mapped[int] = mapped_column(Integer, nullable=False)

    versao_anterior: Mapped[int] = mapped_column(Integer, nullable=False)
    versao_nova: Mapped[int] = mapped_column(Integer, nullable=False)
    tipo_mudanca: Mapped[str] = mapped_column(String(20), nullable=False)

    dados_anteriores: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    dados_novos: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    motivo: Mapped[str] = mapped_column(Text, nullable=False)
    reajuste_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        UniqueConstraint("calculo_id", "versao_nova", name="uq_banco_horas_versoes_calculo_versao"),
        Index("ix_banco_horas_versoes_periodo", "empresa_id", "ano", "mes"),
        CheckConstraint("versao_nova = versao_anterior + 1", name="versao_contigua"),
        CheckConstraint("tipo_mudanca IN ('reajuste', 'recalculo', 'correcao')", name="tipo_mudanca_valido"),
    )
