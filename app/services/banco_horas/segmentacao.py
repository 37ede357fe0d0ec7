"""
Banco de Horas - Segmentation Projector and Consistency Validator

Splits a consolidated monthly calculation into one segment per allocation
(e.g. per cost centre) in proportion to the allocation's share of the
baseline.

Shares are distributed with the largest-remainder method: every share is
floored to a whole unit (minute, ticket or cent) and the leftover units go to
the allocations with the largest fractional remainders, ties broken by
allocation id. The segments of every field therefore add up to the
consolidated value exactly.
"""

import logging
import math
import uuid
from dataclasses import dataclass, field, asdict
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.banco_horas.calculo_engine import CAMPOS_QUANTIDADE, CENTAVOS
from app.services.banco_horas.integracao import ConfiguracaoEmpresaProvider, SQLConfiguracaoEmpresaProvider
from app.services.banco_horas.quantidades import BillingMode, aritmetica_para
from app.services.banco_horas.versionamento_service import buscar_calculo_atual
from app.services.banco_horas.vigencia import Periodo
from app.utils.error_handling import (
    ConsistencyException,
    InvalidAllocationException,
    NotFoundException,
)

logger = logging.getLogger(__name__)


CAMPOS_SEGMENTADOS = CAMPOS_QUANTIDADE + ("valor_a_transportar",)
CEM = Decimal("100")


@dataclass(frozen=True)
class Alocacao:
    """Allocation of a share of the baseline to a named segment."""

    id: Any
    nome: str
    percentual_baseline: Decimal
    ativo: bool = True


@dataclass
class CalculoSegmentado:
    """One allocation's share of a monthly calculation, in integer units."""

    alocacao_id: Any
    nome: str
    percentual_baseline: Decimal
    modo: BillingMode
    baseline: int
    repasse_mes_anterior: int
    saldo_a_utilizar: int
    consumo_chamados: int
    requerimentos: int
    reajustes: int
    consumo_total: int
    saldo: int
    repasse: int
    excedente: int
    valor_a_transportar: int
    valor_a_faturar: Decimal
    is_fim_periodo: bool
    taxa_hora_utilizada: Optional[Decimal] = None
    degradado: bool = False

    def formatar(self) -> Dict[str, Any]:
        aritmetica = aritmetica_para(self.modo)
        dados = asdict(self)
        for campo in CAMPOS_SEGMENTADOS:
            dados[campo] = aritmetica.formatar(dados[campo])
        dados["modo"] = self.modo.value
        return dados


@dataclass
class VisaoSegmentada:
    """Segmented read view of a month."""

    calculo: Any
    segmentos: List[CalculoSegmentado]
    degradado: bool = False
    divergencias: List[Dict[str, Any]] = field(default_factory=list)


# ===========================================
# VALIDATION
# ===========================================

def _percentual(valor: Any) -> Optional[Decimal]:
    if isinstance(valor, bool) or valor is None:
        return None
    try:
        numero = Decimal(str(valor))
    except (InvalidOperation, ValueError):
        return None
    return numero if numero.is_finite() else None


def validar_alocacoes(alocacoes: Sequence[Any]) -> Tuple[bool, List[str], Decimal]:
    """
    Check an allocation set.

    Only active allocations count. Returns (valido, erros, soma_percentuais).
    """
    ativas = [a for a in alocacoes if getattr(a, "ativo", True)]
    erros: List[str] = []
    soma = Decimal("0")

    if not ativas:
        erros.append("At least one active allocation is required")

    for indice, alocacao in enumerate(ativas, start=1):
        nome = (alocacao.nome or "").strip()
        if not nome:
            erros.append(f"Allocation {indice}: name is required")
        percentual = _percentual(alocacao.percentual_baseline)
        if percentual is None:
            erros.append(f"Allocation {nome or indice}: percentual must be a number")
            continue
        if percentual < 0 or percentual > CEM:
            erros.append(f"Allocation {nome or indice}: percentual must be between 0 and 100")
        soma += percentual

    if ativas and soma != CEM:
        erros.append(f"Active allocations must add up to exactly 100%, got {soma}%")

    return not erros, erros, soma


# ===========================================
# PROJECTION
# ===========================================

def _valores_consolidados(calculo: Any) -> Tuple[BillingMode, Dict[str, int]]:
    modo = BillingMode(calculo.modo)
    if hasattr(calculo, "obter_quantidade"):
        valores = {campo: calculo.obter_quantidade(campo, modo.value) for campo in CAMPOS_SEGMENTADOS}
    else:
        valores = {campo: getattr(calculo, campo) for campo in CAMPOS_SEGMENTADOS}
    return modo, valores


def _centavos(valor: Decimal) -> int:
    return int((Decimal(valor) / CENTAVOS).to_integral_value())


def distribuir(total: int, alocacoes: Sequence[Any]) -> Dict[str, int]:
    """
    Largest-remainder split of an integer total by percentual_baseline.

    Keys are str(alocacao.id). Works for negative totals; shares are floored
    toward negative infinity so remainders are always in [0, 1).
    """
    cotas = []
    for alocacao in alocacoes:
        exata = Fraction(total) * Fraction(Decimal(str(alocacao.percentual_baseline))) / 100
        piso = math.floor(exata)
        cotas.append((str(alocacao.id), piso, exata - piso))

    partes = {chave: piso for chave, piso, _ in cotas}
    sobra = total - sum(partes.values())

    # Largest remainder first; ties resolved by allocation id
    ordem = sorted(cotas, key=lambda c: (-c[2], c[0]))
    for chave, _, _ in ordem[:sobra]:
        partes[chave] += 1
    return partes


def projetar_segmentos(calculo: Any, alocacoes: Sequence[Any]) -> List[CalculoSegmentado]:
    """
    Split a calculation into one segment per active allocation.

    Accepts a ResultadoCalculo or a stored BancoHorasCalculo.

    Raises:
        InvalidAllocationException: no active allocation, or the active
            allocations do not add up to exactly 100%
    """
    valido, erros, soma = validar_alocacoes(alocacoes)
    if not valido:
        raise InvalidAllocationException(erros, soma)

    ativas = [a for a in alocacoes if getattr(a, "ativo", True)]
    modo, valores = _valores_consolidados(calculo)

    partes = {campo: distribuir(valores[campo], ativas) for campo in CAMPOS_SEGMENTADOS}
    partes_faturar = distribuir(_centavos(calculo.valor_a_faturar), ativas)

    segmentos = []
    for alocacao in ativas:
        chave = str(alocacao.id)
        segmentos.append(CalculoSegmentado(
            alocacao_id=alocacao.id,
            nome=alocacao.nome,
            percentual_baseline=Decimal(str(alocacao.percentual_baseline)),
            modo=modo,
            valor_a_faturar=Decimal(partes_faturar[chave]) * CENTAVOS,
            is_fim_periodo=bool(calculo.is_fim_periodo),
            taxa_hora_utilizada=calculo.taxa_hora_utilizada,
            **{campo: partes[campo][chave] for campo in CAMPOS_SEGMENTADOS},
        ))
    return segmentos


# ===========================================
# CONSISTENCY
# ===========================================

def validar_consistencia(calculo: Any, segmentos: Sequence[CalculoSegmentado]) -> None:
    """
    Assert that every segmented field adds up to the consolidated value.

    Raises:
        ConsistencyException: carrying one divergence per mismatching field
    """
    _, valores = _valores_consolidados(calculo)
    divergencias = []

    for campo in CAMPOS_SEGMENTADOS:
        soma = sum(getattr(s, campo) for s in segmentos)
        if soma != valores[campo]:
            divergencias.append({"campo": campo, "consolidado": valores[campo], "soma_segmentos": soma})

    soma_faturar = sum((s.valor_a_faturar for s in segmentos), Decimal("0"))
    if soma_faturar != Decimal(calculo.valor_a_faturar):
        divergencias.append({
            "campo": "valor_a_faturar",
            "consolidado": str(calculo.valor_a_faturar),
            "soma_segmentos": str(soma_faturar),
        })

    if divergencias:
        calculo_id = getattr(calculo, "calculo_id", None)
        logger.error(f"Segmentation mismatch for calculo {calculo_id}: {divergencias}")
        raise ConsistencyException(divergencias, calculo_id=calculo_id)


class SegmentacaoService:
    """Read path of the segmented view."""

    def __init__(self, db: AsyncSession, configuracao_provider: Optional[ConfiguracaoEmpresaProvider] = None):
        self.db = db
        self.configuracao_provider = configuracao_provider or SQLConfiguracaoEmpresaProvider(db)

    async def obter_visao_segmentada(self, empresa_id: uuid.UUID, periodo: Periodo) -> VisaoSegmentada:
        """
        Current calculation of a month split by the company's allocations.

        A consistency failure does not fail the read; the segments are
        returned flagged as degraded.
        """
        calculo = await buscar_calculo_atual(self.db, empresa_id, periodo)
        if calculo is None:
            raise NotFoundException(
                "BancoHorasCalculo",
                message=f"No calculation for company '{empresa_id}' in {periodo}",
            )

        configuracao = await self.configuracao_provider.obter(empresa_id)
        segmentos = projetar_segmentos(calculo, configuracao.alocacoes)

        try:
            validar_consistencia(calculo, segmentos)
        except ConsistencyException as exc:
            for segmento in segmentos:
                segmento.degradado = True
            return VisaoSegmentada(calculo=calculo, segmentos=segmentos, degradado=True, divergencias=exc.divergencias)

        return VisaoSegmentada(calculo=calculo, segmentos=segmentos)
