"""
Banco de Horas - Ledger Services Package

Monthly hours-bank ledger for client companies.

Modules:
- quantidades: hours (HH:MM) and tickets value types and arithmetic
- vigencia: periods and apportionment windows
- calculo_engine: pure monthly calculation
- versionamento_service: append-only version history and diffs
- segmentacao: proportional split by allocation and consistency check
- reajuste_service: adjustments and cascading recalculation
- integracao: consumption, configuration and rate sources
"""

from app.services.banco_horas.quantidades import (
    BillingMode,
    Horas,
    Tickets,
    aritmetica_para,
    horas_decimal_para_tickets,
)
from app.services.banco_horas.vigencia import Periodo, is_fim_periodo, fim_da_vigencia, meses_da_vigencia
from app.services.banco_horas.calculo_engine import (
    EntradaCalculo,
    ResultadoCalculo,
    calcular_banco_horas,
    descricao_faturamento,
)
from app.services.banco_horas.versionamento_service import (
    VersionamentoService,
    DiffVersoes,
    criar_snapshot,
    diff_versoes,
)
from app.services.banco_horas.segmentacao import (
    Alocacao,
    CalculoSegmentado,
    SegmentacaoService,
    projetar_segmentos,
    validar_alocacoes,
    validar_consistencia,
)
from app.services.banco_horas.reajuste_service import ReajusteService, ResultadoCascata, EstadoCascata


__all__ = [
    "BillingMode",
    "Horas",
    "Tickets",
    "aritmetica_para",
    "horas_decimal_para_tickets",
    "Periodo",
    "is_fim_periodo",
    "fim_da_vigencia",
    "meses_da_vigencia",
    "EntradaCalculo",
    "ResultadoCalculo",
    "calcular_banco_horas",
    "descricao_faturamento",
    "VersionamentoService",
    "DiffVersoes",
    "criar_snapshot",
    "diff_versoes",
    "Alocacao",
    "CalculoSegmentado",
    "SegmentacaoService",
    "projetar_segmentos",
    "validar_alocacoes",
    "validar_consistencia",
    "ReajusteService",
    "ResultadoCascata",
    "EstadoCascata",
]
