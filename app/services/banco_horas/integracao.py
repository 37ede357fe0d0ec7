"""
Banco de Horas - External Collaborators

Interfaces for the data the ledger consumes from other parts of the system:
consumption, requirement hours, company configuration and excess rates.

Each interface has a default implementation reading the local tables, so the
cascade can run against the database alone. Other sources (usage-tracking
sync, client master data) plug in by implementing the same methods.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional, Protocol

from sqlalchemy import select, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.banco_horas import (
    BancoHorasAlocacao,
    BancoHorasConsumo,
    EmpresaCliente,
    TaxaCliente,
)
from app.services.banco_horas.quantidades import BillingMode, Quantidade, aritmetica_para
from app.services.banco_horas.vigencia import Periodo
from app.utils.error_handling import NotFoundException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfiguracaoEmpresa:
    """Contract configuration of a company as seen by the ledger."""

    empresa_id: uuid.UUID
    modo: BillingMode
    baseline: Quantidade
    percentual_repasse_mensal: Decimal
    inicio_vigencia: date
    periodo_apuracao: int
    possui_repasse_especial: bool = False
    ciclo_atual: int = 1
    ciclos_para_zerar: int = 1
    alocacoes: List[BancoHorasAlocacao] = field(default_factory=list)


# ===========================================
# INTERFACES
# ===========================================

class ConsumoProvider(Protocol):
    async def consultar(self, empresa_id: uuid.UUID, periodo: Periodo) -> Quantidade:
        ...


class RequerimentosProvider(Protocol):
    async def consultar(self, empresa_id: uuid.UUID, periodo: Periodo) -> Quantidade:
        ...


class ConfiguracaoEmpresaProvider(Protocol):
    async def obter(self, empresa_id: uuid.UUID) -> ConfiguracaoEmpresa:
        ...


class TaxaProvider(Protocol):
    async def taxa_do_mes(self, empresa_id: uuid.UUID, periodo: Periodo, modo: BillingMode) -> Optional[Decimal]:
        ...


# ===========================================
# DATABASE-BACKED DEFAULTS
# ===========================================

async def _obter_empresa(db: AsyncSession, empresa_id: uuid.UUID) -> EmpresaCliente:
    empresa = await db.get(EmpresaCliente, empresa_id)
    if empresa is None:
        raise NotFoundException("EmpresaCliente", empresa_id)
    return empresa


class _SQLConsumoBase:
    campo: str = ""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def consultar(self, empresa_id: uuid.UUID, periodo: Periodo) -> Quantidade:
        empresa = await _obter_empresa(self.db, empresa_id)
        aritmetica = aritmetica_para(empresa.modo_cobranca)

        result = await self.db.execute(
            select(BancoHorasConsumo).where(
                BancoHorasConsumo.empresa_id == empresa_id,
                BancoHorasConsumo.mes == periodo.mes,
                BancoHorasConsumo.ano == periodo.ano,
            )
        )
        consumo = result.scalar_one_or_none()
        if consumo is None:
            return aritmetica.quantidade(0)
        return aritmetica.quantidade(consumo.obter_quantidade(self.campo, empresa.modo_cobranca))


class SQLConsumoProvider(_SQLConsumoBase):
    """Ticket consumption imported into banco_horas_consumo."""
    campo = "consumo_chamados"


class SQLRequerimentosProvider(_SQLConsumoBase):
    """Billable requirement hours imported into banco_horas_consumo."""
    campo = "requerimentos"


class SQLConfiguracaoEmpresaProvider:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def obter(self, empresa_id: uuid.UUID) -> ConfiguracaoEmpresa:
        empresa = await _obter_empresa(self.db, empresa_id)
        aritmetica = aritmetica_para(empresa.modo_cobranca)

        result = await self.db.execute(
            select(BancoHorasAlocacao)
            .where(
                BancoHorasAlocacao.empresa_id == empresa_id,
                BancoHorasAlocacao.ativo.is_(True),
            )
            .order_by(BancoHorasAlocacao.nome)
        )

        percentual = empresa.percentual_repasse_mensal
        if percentual is None:
            percentual = Decimal(settings.banco_horas_percentual_repasse_padrao)

        return ConfiguracaoEmpresa(
            empresa_id=empresa.id,
            modo=aritmetica.modo,
            baseline=aritmetica.quantidade(empresa.obter_quantidade("baseline", empresa.modo_cobranca)),
            percentual_repasse_mensal=Decimal(percentual),
            inicio_vigencia=empresa.inicio_vigencia,
            periodo_apuracao=empresa.periodo_apuracao or settings.banco_horas_periodo_apuracao_padrao,
            possui_repasse_especial=bool(empresa.possui_repasse_especial),
            ciclo_atual=empresa.ciclo_atual or 1,
            ciclos_para_zerar=empresa.ciclos_para_zerar or 1,
            alocacoes=list(result.scalars().all()),
        )


class SQLTaxaProvider:
    """
    Excess rates from taxas_clientes.

    The rate of a month is the oldest one valid on its first day.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def taxa_do_mes(self, empresa_id: uuid.UUID, periodo: Periodo, modo: BillingMode) -> Optional[Decimal]:
        referencia = periodo.primeiro_dia
        result = await self.db.execute(
            select(TaxaCliente)
            .where(
                and_(
                    TaxaCliente.empresa_id == empresa_id,
                    TaxaCliente.vigencia_inicio <= referencia,
                    or_(TaxaCliente.vigencia_fim.is_(None), TaxaCliente.vigencia_fim >= referencia),
                )
            )
            .order_by(TaxaCliente.vigencia_inicio)
            .limit(1)
        )
        taxa = result.scalar_one_or_none()
        if taxa is None:
            logger.info(f"No excess rate valid on {referencia} for company {empresa_id}")
            return None

        valor = taxa.valor_hora_excedente if BillingMode(modo) == BillingMode.HORAS else taxa.valor_ticket_excedente
        return Decimal(valor) if valor is not None else None
