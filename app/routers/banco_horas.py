"""
Banco de Horas - Ledger Router

API endpoints for monthly hours-bank calculations, adjustments, version
history and the segmented view.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.banco_horas import BancoHorasCalculo, BancoHorasReajuste
from app.schemas.banco_horas import (
    CadeiaVersoesResponse,
    CalculoResponse,
    CampoModificadoResponse,
    CascataResponse,
    DiffVersoesResponse,
    ReajusteCreateRequest,
    ReajusteInativarRequest,
    ReajusteResponse,
    RecalculoRequest,
    ResultadoCalculoResponse,
    SegmentoResponse,
    SimulacaoCalculoRequest,
    ValidarAlocacoesRequest,
    ValidarAlocacoesResponse,
    VersaoResponse,
    VisaoSegmentadaResponse,
)
from app.services.banco_horas.calculo_engine import (
    EntradaCalculo,
    calcular_banco_horas,
    descricao_faturamento,
)
from app.services.banco_horas.quantidades import aritmetica_para
from app.services.banco_horas.reajuste_service import ReajusteService, ResultadoCascata
from app.services.banco_horas.segmentacao import (
    CAMPOS_SEGMENTADOS,
    SegmentacaoService,
    validar_alocacoes,
)
from app.services.banco_horas.versionamento_service import VersionamentoService
from app.services.banco_horas.vigencia import Periodo

router = APIRouter(
    prefix="/api/v1/banco-horas",
    tags=["Banco de Horas"],
)


# ============================================================================
# Helpers
# ============================================================================

def calculo_para_response(calculo: BancoHorasCalculo) -> CalculoResponse:
    aritmetica = aritmetica_para(calculo.modo)
    quantidades = {
        campo: aritmetica.formatar(calculo.obter_quantidade(campo, calculo.modo))
        for campo in CAMPOS_SEGMENTADOS
    }
    return CalculoResponse(
        id=calculo.id,
        calculo_id=calculo.calculo_id,
        empresa_id=calculo.empresa_id,
        mes=calculo.mes,
        ano=calculo.ano,
        versao=calculo.versao,
        modo=calculo.modo,
        valor_a_faturar=calculo.valor_a_faturar,
        is_fim_periodo=calculo.is_fim_periodo,
        percentual_repasse_mensal=calculo.percentual_repasse_mensal,
        taxa_hora_utilizada=calculo.taxa_hora_utilizada,
        observacao=calculo.observacao,
        descricao_faturamento=descricao_faturamento(
            calculo.modo,
            calculo.obter_quantidade("excedente", calculo.modo),
            calculo.valor_a_faturar,
            Periodo(ano=calculo.ano, mes=calculo.mes),
        ),
        created_by=calculo.created_by,
        created_at=calculo.created_at,
        **quantidades,
    )


def reajuste_para_response(reajuste: BancoHorasReajuste, modo: str) -> ReajusteResponse:
    aritmetica = aritmetica_para(modo)
    return ReajusteResponse(
        id=reajuste.id,
        empresa_id=reajuste.empresa_id,
        mes=reajuste.mes,
        ano=reajuste.ano,
        valor=aritmetica.formatar(reajuste.obter_quantidade("valor", modo)),
        tipo=reajuste.tipo,
        observacao=reajuste.observacao,
        created_by=reajuste.created_by,
        ativo=reajuste.ativo,
        motivo_inativacao=reajuste.motivo_inativacao,
        inativado_por=reajuste.inativado_por,
        created_at=reajuste.created_at,
    )


def _modo_do_reajuste(reajuste: BancoHorasReajuste) -> str:
    return "horas" if reajuste.valor_horas is not None else "tickets"


def cascata_para_response(resultado: ResultadoCascata) -> CascataResponse:
    reajuste = None
    if resultado.reajuste is not None:
        reajuste = reajuste_para_response(resultado.reajuste, _modo_do_reajuste(resultado.reajuste))
    return CascataResponse(
        empresa_id=resultado.empresa_id,
        estado=resultado.estado.value,
        periodo_inicial=str(resultado.periodo_inicial),
        periodos_recalculados=[str(p) for p in resultado.periodos_recalculados],
        versao_ids=resultado.versao_ids,
        reajuste=reajuste,
        calculos=[calculo_para_response(c) for c in resultado.calculos],
    )


# ============================================================================
# Calculation Endpoints
# ============================================================================

@router.post("/simular", response_model=ResultadoCalculoResponse)
async def simular_calculo(data: SimulacaoCalculoRequest):
    """
    Calculate a month from explicit inputs without storing anything.

    Useful for previewing the effect of an adjustment.
    """
    resultado = calcular_banco_horas(EntradaCalculo(**data.model_dump()))
    return ResultadoCalculoResponse(**resultado.formatar())


@router.get("/empresas/{empresa_id}/calculos/{ano}/{mes}", response_model=CalculoResponse)
async def obter_calculo(
    empresa_id: UUID = Path(...),
    ano: int = Path(..., ge=2000, le=2100),
    mes: int = Path(..., ge=1, le=12),
    db: AsyncSession = Depends(get_db),
):
    """Current calculation of a month, computed on first access (after any running cascade)."""
    service = ReajusteService(db)
    calculo = await service.obter_ou_calcular(empresa_id, Periodo(ano=ano, mes=mes))
    return calculo_para_response(calculo)


@router.post("/empresas/{empresa_id}/vigencias/{ano}/{mes}", response_model=List[CalculoResponse])
async def calcular_vigencia(
    empresa_id: UUID = Path(...),
    ano: int = Path(..., ge=2000, le=2100),
    mes: int = Path(..., ge=1, le=12),
    db: AsyncSession = Depends(get_db),
):
    """Materialize every month of the apportionment window containing the month."""
    service = ReajusteService(db)
    calculos = await service.calcular_vigencia(empresa_id, Periodo(ano=ano, mes=mes))
    return [calculo_para_response(c) for c in calculos]


@router.post("/empresas/{empresa_id}/recalcular", response_model=CascataResponse)
async def recalcular(
    data: RecalculoRequest,
    empresa_id: UUID = Path(...),
    db: AsyncSession = Depends(get_db),
):
    """Force a recalculation from a month onward."""
    service = ReajusteService(db)
    resultado = await service.recalcular_a_partir_de(
        empresa_id=empresa_id,
        periodo=Periodo(ano=data.ano, mes=data.mes),
        motivo=data.motivo,
        autor=data.autor,
    )
    return cascata_para_response(resultado)


# ============================================================================
# Adjustment Endpoints
# ============================================================================

@router.post(
    "/empresas/{empresa_id}/reajustes",
    response_model=CascataResponse,
    status_code=status.HTTP_201_CREATED,
)
async def aplicar_reajuste(
    data: ReajusteCreateRequest,
    empresa_id: UUID = Path(...),
    db: AsyncSession = Depends(get_db),
):
    """
    Record an adjustment and recalculate every affected month.

    Returns 409 with retryable=true while another cascade runs for the
    same company.
    """
    service = ReajusteService(db)
    resultado = await service.aplicar_reajuste(
        empresa_id=empresa_id,
        periodo=Periodo(ano=data.ano, mes=data.mes),
        valor=data.valor,
        motivo=data.motivo,
        autor=data.autor,
    )
    return cascata_para_response(resultado)


@router.get("/empresas/{empresa_id}/reajustes", response_model=List[ReajusteResponse])
async def listar_reajustes(
    empresa_id: UUID = Path(...),
    ano: Optional[int] = Query(None, ge=2000, le=2100),
    mes: Optional[int] = Query(None, ge=1, le=12),
    db: AsyncSession = Depends(get_db),
):
    """Active adjustments, newest first. Filter by month with ano and mes."""
    periodo = Periodo(ano=ano, mes=mes) if ano is not None and mes is not None else None
    service = ReajusteService(db)
    reajustes = await service.listar_reajustes(empresa_id, periodo)
    return [reajuste_para_response(r, _modo_do_reajuste(r)) for r in reajustes]


@router.post("/reajustes/{reajuste_id}/inativar", response_model=CascataResponse)
async def inativar_reajuste(
    data: ReajusteInativarRequest,
    reajuste_id: UUID = Path(...),
    db: AsyncSession = Depends(get_db),
):
    """Deactivate an adjustment and recalculate from its month."""
    service = ReajusteService(db)
    resultado = await service.inativar_reajuste(reajuste_id, data.motivo, data.autor)
    return cascata_para_response(resultado)


# ============================================================================
# Version History Endpoints
# ============================================================================

@router.get("/empresas/{empresa_id}/calculos/{ano}/{mes}/versoes", response_model=List[VersaoResponse])
async def listar_versoes_periodo(
    empresa_id: UUID = Path(...),
    ano: int = Path(..., ge=2000, le=2100),
    mes: int = Path(..., ge=1, le=12),
    db: AsyncSession = Depends(get_db),
):
    """Version history of a month, newest first."""
    service = VersionamentoService(db)
    return await service.listar_versoes_periodo(empresa_id, Periodo(ano=ano, mes=mes))


@router.get("/calculos/{calculo_id}/versoes", response_model=List[VersaoResponse])
async def listar_versoes(
    calculo_id: UUID = Path(...),
    db: AsyncSession = Depends(get_db),
):
    service = VersionamentoService(db)
    return await service.listar_versoes(calculo_id)


@router.get("/calculos/{calculo_id}/cadeia", response_model=CadeiaVersoesResponse)
async def verificar_cadeia(
    calculo_id: UUID = Path(...),
    db: AsyncSession = Depends(get_db),
):
    """Check that the version chain of a calculation is gapless."""
    service = VersionamentoService(db)
    return await service.verificar_cadeia(calculo_id)


@router.get("/versoes/comparar", response_model=DiffVersoesResponse)
async def comparar_versoes(
    versao_1: UUID = Query(...),
    versao_2: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Field-level differences between two versions."""
    service = VersionamentoService(db)
    v1, v2, diff = await service.comparar(versao_1, versao_2)
    return DiffVersoesResponse(
        versao_1=VersaoResponse.model_validate(v1),
        versao_2=VersaoResponse.model_validate(v2),
        campos_adicionados=diff.campos_adicionados,
        campos_removidos=diff.campos_removidos,
        campos_modificados=[
            CampoModificadoResponse(campo=c.campo, valor_anterior=c.valor_anterior, valor_novo=c.valor_novo)
            for c in diff.campos_modificados
        ],
    )


# ============================================================================
# Segmentation Endpoints
# ============================================================================

@router.get("/empresas/{empresa_id}/calculos/{ano}/{mes}/segmentado", response_model=VisaoSegmentadaResponse)
async def obter_visao_segmentada(
    empresa_id: UUID = Path(...),
    ano: int = Path(..., ge=2000, le=2100),
    mes: int = Path(..., ge=1, le=12),
    db: AsyncSession = Depends(get_db),
):
    """
    Current calculation split by the company's active allocations.

    A consistency failure is reported with degradado=true instead of an error.
    """
    periodo = Periodo(ano=ano, mes=mes)
    await ReajusteService(db).obter_ou_calcular(empresa_id, periodo)

    visao = await SegmentacaoService(db).obter_visao_segmentada(empresa_id, periodo)
    return VisaoSegmentadaResponse(
        calculo=calculo_para_response(visao.calculo),
        segmentos=[SegmentoResponse(**s.formatar()) for s in visao.segmentos],
        degradado=visao.degradado,
        divergencias=visao.divergencias,
    )


@router.post("/alocacoes/validar", response_model=ValidarAlocacoesResponse)
async def validar_alocacoes_endpoint(data: ValidarAlocacoesRequest):
    """Check an allocation set before saving it."""
    valido, erros, soma = validar_alocacoes(data.alocacoes)
    return ValidarAlocacoesResponse(valido=valido, erros=erros, soma_percentuais=soma)
