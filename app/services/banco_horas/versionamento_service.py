"""
Banco de Horas - Version History Service

Append-only history of monthly calculations.

Every change to a month's calculation records a version entry holding the
business snapshot before and after the change. Versions of one calculo_id
form a gapless chain 1, 2, 3, ...; the database rejects a second entry with
the same (calculo_id, versao_nova).
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.banco_horas import BancoHorasCalculo, BancoHorasVersao, TipoMudanca
from app.services.banco_horas.calculo_engine import CAMPOS_QUANTIDADE
from app.services.banco_horas.quantidades import BillingMode, aritmetica_para
from app.services.banco_horas.vigencia import Periodo
from app.utils.error_handling import NotFoundException, PersistenceException

logger = logging.getLogger(__name__)


# ===========================================
# SNAPSHOTS AND DIFFS
# ===========================================

def criar_snapshot(calculo: Optional[BancoHorasCalculo]) -> Dict[str, Any]:
    """
    JSON-safe business snapshot of a calculation.

    Only the ledger fields are kept; identifiers and timestamps are left out
    so two snapshots of equal values compare equal.
    """
    if calculo is None:
        return {}

    aritmetica = aritmetica_para(calculo.modo)
    snapshot: Dict[str, Any] = {
        "modo": BillingMode(calculo.modo).value,
        "mes": calculo.mes,
        "ano": calculo.ano,
    }
    for campo in CAMPOS_QUANTIDADE + ("valor_a_transportar",):
        snapshot[campo] = aritmetica.formatar(calculo.obter_quantidade(campo, calculo.modo))

    snapshot["valor_a_faturar"] = str(calculo.valor_a_faturar)
    snapshot["taxa_hora_utilizada"] = str(calculo.taxa_hora_utilizada) if calculo.taxa_hora_utilizada is not None else None
    snapshot["percentual_repasse_mensal"] = str(calculo.percentual_repasse_mensal)
    snapshot["is_fim_periodo"] = bool(calculo.is_fim_periodo)
    snapshot["observacao"] = calculo.observacao
    return snapshot


@dataclass
class CampoModificado:
    campo: str
    valor_anterior: Any
    valor_novo: Any


@dataclass
class DiffVersoes:
    """Field-level differences between two snapshots."""

    campos_adicionados: List[str] = field(default_factory=list)
    campos_removidos: List[str] = field(default_factory=list)
    campos_modificados: List[CampoModificado] = field(default_factory=list)

    @property
    def vazio(self) -> bool:
        return not (self.campos_adicionados or self.campos_removidos or self.campos_modificados)


def _valores_iguais(a: Any, b: Any) -> bool:
    # None and empty string are the same "no value"
    if a in (None, "") and b in (None, ""):
        return True
    return a == b


def diff_dados(anteriores: Dict[str, Any], novos: Dict[str, Any]) -> DiffVersoes:
    diff = DiffVersoes()
    for campo in novos:
        if campo not in anteriores:
            diff.campos_adicionados.append(campo)
    for campo in anteriores:
        if campo not in novos:
            diff.campos_removidos.append(campo)
    for campo in novos:
        if campo in anteriores and not _valores_iguais(anteriores[campo], novos[campo]):
            diff.campos_modificados.append(CampoModificado(campo, anteriores[campo], novos[campo]))
    return diff


def diff_versoes(v1: BancoHorasVersao, v2: BancoHorasVersao) -> DiffVersoes:
    """Compare the resulting snapshots (dados_novos) of two versions."""
    return diff_dados(v1.dados_novos or {}, v2.dados_novos or {})


@dataclass
class ResultadoCadeia:
    """Outcome of a version chain check."""

    calculo_id: uuid.UUID
    valida: bool
    total_versoes: int
    problemas: List[str] = field(default_factory=list)


# ===========================================
# CURRENT CALCULATION LOOKUP
# ===========================================

async def buscar_calculo_atual(
    db: AsyncSession,
    empresa_id: uuid.UUID,
    periodo: Periodo,
) -> Optional[BancoHorasCalculo]:
    """Highest version of a month's calculation, or None."""
    result = await db.execute(
        select(BancoHorasCalculo)
        .where(
            BancoHorasCalculo.empresa_id == empresa_id,
            BancoHorasCalculo.mes == periodo.mes,
            BancoHorasCalculo.ano == periodo.ano,
        )
        .order_by(desc(BancoHorasCalculo.versao))
        .limit(1)
    )
    return result.scalar_one_or_none()


async def ultimo_periodo_calculado(db: AsyncSession, empresa_id: uuid.UUID) -> Optional[Periodo]:
    """Latest month that already has a calculation for the company."""
    result = await db.execute(
        select(BancoHorasCalculo.ano, BancoHorasCalculo.mes)
        .where(BancoHorasCalculo.empresa_id == empresa_id)
        .order_by(desc(BancoHorasCalculo.ano), desc(BancoHorasCalculo.mes))
        .limit(1)
    )
    row = result.first()
    return Periodo(ano=row.ano, mes=row.mes) if row else None


# ===========================================
# SERVICE
# ===========================================

class VersionamentoService:
    """Service for recording and querying calculation versions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _ultima_versao(self, calculo_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.max(BancoHorasVersao.versao_nova)).where(
                BancoHorasVersao.calculo_id == calculo_id
            )
        )
        return result.scalar() or 0

    async def registrar_versao(
        self,
        calculo_id: uuid.UUID,
        antes: Optional[BancoHorasCalculo],
        depois: BancoHorasCalculo,
        tipo_mudanca: TipoMudanca,
        motivo: str,
        autor: str,
        reajuste_id: Optional[uuid.UUID] = None,
    ) -> BancoHorasVersao:
        """
        Append a version entry for a calculation.

        The entry is added to the session and flushed but not committed;
        the caller owns the transaction.
        """
        versao_anterior = await self._ultima_versao(calculo_id)
        versao_nova = versao_anterior + 1

        if depois.calculo_id != calculo_id or depois.versao != versao_nova:
            raise PersistenceException(
                message=(
                    f"Version chain out of sync for calculo {calculo_id}: "
                    f"expected version {versao_nova}, got {depois.versao}"
                )
            )

        versao = BancoHorasVersao(
            id=uuid.uuid4(),
            calculo_id=calculo_id,
            empresa_id=depois.empresa_id,
            mes=depois.mes,
            ano=depois.ano,
            versao_anterior=versao_anterior,
            versao_nova=versao_nova,
            tipo_mudanca=TipoMudanca(tipo_mudanca).value,
            dados_anteriores=criar_snapshot(antes),
            dados_novos=criar_snapshot(depois),
            motivo=motivo,
            reajuste_id=reajuste_id,
            created_by=autor,
        )
        self.db.add(versao)
        await self.db.flush()

        logger.debug(
            f"Recorded version {versao_nova} ({versao.tipo_mudanca}) for calculo {calculo_id} "
            f"{depois.mes:02d}/{depois.ano}"
        )
        return versao

    async def listar_versoes(self, calculo_id: uuid.UUID) -> List[BancoHorasVersao]:
        """All versions of a calculation, newest first."""
        result = await self.db.execute(
            select(BancoHorasVersao)
            .where(BancoHorasVersao.calculo_id == calculo_id)
            .order_by(desc(BancoHorasVersao.versao_nova))
        )
        return list(result.scalars().all())

    async def listar_versoes_periodo(self, empresa_id: uuid.UUID, periodo: Periodo) -> List[BancoHorasVersao]:
        result = await self.db.execute(
            select(BancoHorasVersao)
            .where(
                BancoHorasVersao.empresa_id == empresa_id,
                BancoHorasVersao.mes == periodo.mes,
                BancoHorasVersao.ano == periodo.ano,
            )
            .order_by(desc(BancoHorasVersao.versao_nova))
        )
        return list(result.scalars().all())

    async def buscar_versao(self, versao_id: uuid.UUID) -> BancoHorasVersao:
        versao = await self.db.get(BancoHorasVersao, versao_id)
        if versao is None:
            raise NotFoundException("BancoHorasVersao", versao_id)
        return versao

    async def comparar(self, versao_id_1: uuid.UUID, versao_id_2: uuid.UUID) -> Tuple[BancoHorasVersao, BancoHorasVersao, DiffVersoes]:
        v1 = await self.buscar_versao(versao_id_1)
        v2 = await self.buscar_versao(versao_id_2)
        return v1, v2, diff_versoes(v1, v2)

    async def verificar_cadeia(self, calculo_id: uuid.UUID) -> ResultadoCadeia:
        """
        Check that the versions of a calculation form a gapless chain
        starting at 1 and that every version has its calculation row.
        """
        result = await self.db.execute(
            select(BancoHorasVersao)
            .where(BancoHorasVersao.calculo_id == calculo_id)
            .order_by(BancoHorasVersao.versao_nova)
        )
        versoes = list(result.scalars().all())

        result = await self.db.execute(
            select(BancoHorasCalculo.versao).where(BancoHorasCalculo.calculo_id == calculo_id)
        )
        versoes_calculo = set(result.scalars().all())

        problemas = []
        esperado = 1
        for versao in versoes:
            if versao.versao_nova != esperado:
                problemas.append(f"Expected version {esperado}, found {versao.versao_nova}")
            if versao.versao_anterior != versao.versao_nova - 1:
                problemas.append(
                    f"Version {versao.versao_nova} points to previous version {versao.versao_anterior}"
                )
            if versao.versao_nova not in versoes_calculo:
                problemas.append(f"Version {versao.versao_nova} has no calculation row")
            esperado = versao.versao_nova + 1

        if not versoes:
            problemas.append("No versions recorded")

        if problemas:
            logger.warning(f"Version chain of calculo {calculo_id} is broken: {problemas}")

        return ResultadoCadeia(
            calculo_id=calculo_id,
            valida=not problemas,
            total_versoes=len(versoes),
            problemas=problemas,
        )
