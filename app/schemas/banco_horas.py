"""
Banco de Horas - Ledger Schemas

Pydantic schemas for the hours-bank API.

Quantities travel as strings in the company's billing mode: "HH:MM" for
hours companies and whole numbers for tickets companies.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict

from app.services.banco_horas.quantidades import BillingMode


Quantidade = Union[str, int]


# ===========================================
# REQUEST SCHEMAS
# ===========================================

class SimulacaoCalculoRequest(BaseModel):
    """Inputs for a stateless monthly calculation."""
    modo: BillingMode
    baseline: Quantidade
    repasse_mes_anterior: Quantidade
    consumo_chamados: Quantidade
    requerimentos: Quantidade
    reajustes: Quantidade
    percentual_repasse_mensal: Decimal = Field(Decimal("100"), description="Share of a positive balance carried over (0-100)")
    is_fim_periodo: bool = False
    taxa_hora_excedente: Optional[Decimal] = Field(None, ge=0)
    possui_repasse_especial: bool = False
    ciclo_atual: int = 1
    ciclos_para_zerar: int = 1


class ReajusteCreateRequest(BaseModel):
    """Schema for recording an adjustment."""
    mes: int = Field(..., ge=1, le=12)
    ano: int = Field(..., ge=2000, le=2100)
    valor: Quantidade = Field(..., description="Signed value: '-10:00' / '+02:30' for hours, -3 / 5 for tickets")
    motivo: str = Field(..., max_length=2000, description="Justification")
    autor: str = Field(..., min_length=1, max_length=255)


class ReajusteInativarRequest(BaseModel):
    """Schema for deactivating an adjustment."""
    motivo: str = Field(..., max_length=2000)
    autor: str = Field(..., min_length=1, max_length=255)


class RecalculoRequest(BaseModel):
    """Schema for a forced recalculation."""
    mes: int = Field(..., ge=1, le=12)
    ano: int = Field(..., ge=2000, le=2100)
    motivo: str = Field(..., min_length=1, max_length=2000)
    autor: str = Field(..., min_length=1, max_length=255)


class AlocacaoInput(BaseModel):
    id: Optional[UUID] = None
    nome: str = ""
    percentual_baseline: Decimal
    ativo: bool = True


class ValidarAlocacoesRequest(BaseModel):
    alocacoes: List[AlocacaoInput]


# ===========================================
# RESPONSE SCHEMAS
# ===========================================

class ResultadoCalculoResponse(BaseModel):
    """Derived values of a month, quantities formatted."""
    modo: str
    baseline: str
    repasse_mes_anterior: str
    saldo_a_utilizar: str
    consumo_chamados: str
    requerimentos: str
    reajustes: str
    consumo_total: str
    saldo: str
    repasse: str
    excedente: str
    valor_a_transportar: str
    valor_a_faturar: Decimal
    is_fim_periodo: bool
    percentual_repasse_mensal: Decimal
    taxa_hora_utilizada: Optional[Decimal] = None
    observacao: Optional[str] = None


class CalculoResponse(ResultadoCalculoResponse):
    """Stored calculation version of a month."""
    id: UUID
    calculo_id: UUID
    empresa_id: UUID
    mes: int
    ano: int
    versao: int
    descricao_faturamento: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class ReajusteResponse(BaseModel):
    """Schema for adjustment response."""
    id: UUID
    empresa_id: UUID
    mes: int
    ano: int
    valor: str
    tipo: str
    observacao: str
    created_by: str
    ativo: bool
    motivo_inativacao: Optional[str] = None
    inativado_por: Optional[str] = None
    created_at: Optional[datetime] = None


class CascataResponse(BaseModel):
    """Outcome of a committed cascade."""
    empresa_id: UUID
    estado: str
    periodo_inicial: str
    periodos_recalculados: List[str]
    versao_ids: List[UUID]
    reajuste: Optional[ReajusteResponse] = None
    calculos: List[CalculoResponse]


class VersaoResponse(BaseModel):
    """Schema for a version history entry."""
    id: UUID
    calculo_id: UUID
    empresa_id: UUID
    mes: int
    ano: int
    versao_anterior: int
    versao_nova: int
    tipo_mudanca: str
    dados_anteriores: Dict[str, Any]
    dados_novos: Dict[str, Any]
    motivo: str
    reajuste_id: Optional[UUID] = None
    created_by: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CampoModificadoResponse(BaseModel):
    campo: str
    valor_anterior: Any = None
    valor_novo: Any = None

    model_config = ConfigDict(from_attributes=True)


class DiffVersoesResponse(BaseModel):
    """Field-level differences between two versions."""
    versao_1: VersaoResponse
    versao_2: VersaoResponse
    campos_adicionados: List[str]
    campos_removidos: List[str]
    campos_modificados: List[CampoModificadoResponse]


class CadeiaVersoesResponse(BaseModel):
    calculo_id: UUID
    valida: bool
    total_versoes: int
    problemas: List[str]

    model_config = ConfigDict(from_attributes=True)


class SegmentoResponse(BaseModel):
    """One allocation's share of a month."""
    alocacao_id: Optional[UUID] = None
    nome: str
    percentual_baseline: Decimal
    modo: str
    baseline: str
    repasse_mes_anterior: str
    saldo_a_utilizar: str
    consumo_chamados: str
    requerimentos: str
    reajustes: str
    consumo_total: str
    saldo: str
    repasse: str
    excedente: str
    valor_a_transportar: str
    valor_a_faturar: Decimal
    is_fim_periodo: bool
    taxa_hora_utilizada: Optional[Decimal] = None
    degradado: bool = False


class VisaoSegmentadaResponse(BaseModel):
    calculo: CalculoResponse
    segmentos: List[SegmentoResponse]
    degradado: bool
    divergencias: List[Dict[str, Any]] = []


class ValidarAlocacoesResponse(BaseModel):
    valido: bool
    erros: List[str]
    soma_percentuais: Decimal
