"""
Banco de Horas - Ledger Calculation Engine

Pure derivation of one month of a company's hours bank.

Derivation order:
1. saldo_a_utilizar = baseline + repasse_mes_anterior
2. consumo_total = consumo_chamados + requerimentos - reajustes
3. saldo = saldo_a_utilizar - consumo_total
4. repasse / excedente from the sign of saldo and the window end
5. valor_a_faturar = excedente x taxa, rounded to cents

All quantities are integer units of the company's billing mode (minutes for
hours, tickets for tickets). The engine holds no state and performs no I/O,
so identical inputs always give identical results.
"""

import logging
from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Dict, Optional, Union

from app.services.banco_horas.quantidades import BillingMode, aritmetica_para
from app.services.banco_horas.vigencia import Periodo
from app.utils.error_handling import ValidationException

logger = logging.getLogger(__name__)


CENTAVOS = Decimal("0.01")

# Ledger fields that hold quantities in the company's billing mode
CAMPOS_QUANTIDADE = (
    "baseline",
    "repasse_mes_anterior",
    "saldo_a_utilizar",
    "consumo_chamados",
    "requerimentos",
    "reajustes",
    "consumo_total",
    "saldo",
    "repasse",
    "excedente",
)


@dataclass(frozen=True)
class EntradaCalculo:
    """Inputs for one month. Quantities may be strings, ints or Horas/Tickets."""

    modo: BillingMode
    baseline: Any
    repasse_mes_anterior: Any
    consumo_chamados: Any
    requerimentos: Any
    reajustes: Any
    percentual_repasse_mensal: Union[int, Decimal] = 100
    is_fim_periodo: bool = False
    taxa_hora_excedente: Optional[Decimal] = None
    possui_repasse_especial: bool = False
    ciclo_atual: int = 1
    ciclos_para_zerar: int = 1


@dataclass(frozen=True)
class ResultadoCalculo:
    """Derived ledger values for one month, in integer units."""

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
    percentual_repasse_mensal: Decimal
    taxa_hora_utilizada: Optional[Decimal] = None
    observacao: Optional[str] = None

    def formatar(self) -> Dict[str, Any]:
        """Display form: quantities as HH:MM or ticket counts."""
        aritmetica = aritmetica_para(self.modo)
        dados = asdict(self)
        for campo in CAMPOS_QUANTIDADE + ("valor_a_transportar",):
            dados[campo] = aritmetica.formatar(dados[campo])
        dados["modo"] = self.modo.value
        return dados


# ===========================================
# HELPERS
# ===========================================

def valor_a_transportar(saldo: int, repasse: int, is_fim_periodo: bool) -> int:
    """
    Amount that becomes the next month's repasse_mes_anterior.

    A positive balance carries its repasse. A negative balance is carried as
    a debt inside the window and is cleared once billed at the window end.
    """
    if saldo >= 0:
        return repasse
    if is_fim_periodo:
        return 0
    return saldo


def _para_decimal(valor: Any, campo: str) -> Decimal:
    if isinstance(valor, bool):
        raise ValidationException(message=f"{campo} must be a number, got {valor!r}", field=campo)
    try:
        numero = Decimal(str(valor))
    except (InvalidOperation, ValueError):
        raise ValidationException(message=f"{campo} must be a number, got {valor!r}", field=campo)
    if not numero.is_finite():
        raise ValidationException(message=f"{campo} must be a finite number, got {valor!r}", field=campo)
    return numero


def _validar_percentual(percentual: Any) -> Decimal:
    valor = _para_decimal(percentual, "percentual_repasse_mensal")
    if valor < 0 or valor > 100:
        raise ValidationException(
            message=f"percentual_repasse_mensal must be between 0 and 100, got {percentual}",
            field="percentual_repasse_mensal",
        )
    return valor


def _validar_ciclos(ciclo_atual: Any, ciclos_para_zerar: Any) -> None:
    for campo, valor in (("ciclo_atual", ciclo_atual), ("ciclos_para_zerar", ciclos_para_zerar)):
        if not isinstance(valor, int) or isinstance(valor, bool) or valor < 1:
            raise ValidationException(message=f"{campo} must be an integer >= 1, got {valor!r}", field=campo)


def calcular_valor_faturar(excedente: Decimal, taxa: Decimal) -> Decimal:
    """Overage value rounded to cents."""
    return (excedente * taxa).quantize(CENTAVOS, rounding=ROUND_HALF_UP)


# ===========================================
# ENGINE
# ===========================================

def calcular_banco_horas(entrada: EntradaCalculo) -> ResultadoCalculo:
    """
    Derive every ledger field for one month.

    Raises:
        ValidationException: negative baseline, percentual outside [0, 100],
            cycle values below 1, malformed quantities or a quantity that does
            not match the billing mode
    """
    aritmetica = aritmetica_para(entrada.modo)

    baseline = aritmetica.parse(entrada.baseline, "baseline")
    if baseline < 0:
        raise ValidationException(
            message=f"baseline cannot be negative, got {aritmetica.formatar(baseline)}",
            field="baseline",
        )
    repasse_mes_anterior = aritmetica.parse(entrada.repasse_mes_anterior, "repasse_mes_anterior")
    consumo_chamados = aritmetica.parse(entrada.consumo_chamados, "consumo_chamados")
    requerimentos = aritmetica.parse(entrada.requerimentos, "requerimentos")
    reajustes = aritmetica.parse(entrada.reajustes, "reajustes")
    percentual = _validar_percentual(entrada.percentual_repasse_mensal)
    _validar_ciclos(entrada.ciclo_atual, entrada.ciclos_para_zerar)

    taxa = None
    if entrada.taxa_hora_excedente is not None:
        taxa = _para_decimal(entrada.taxa_hora_excedente, "taxa_hora_excedente")
        if taxa < 0:
            raise ValidationException(message="taxa_hora_excedente cannot be negative", field="taxa_hora_excedente")

    saldo_a_utilizar = baseline + repasse_mes_anterior
    consumo_total = consumo_chamados + requerimentos - reajustes
    saldo = saldo_a_utilizar - consumo_total

    if saldo >= 0:
        excedente = 0
        if not entrada.is_fim_periodo:
            repasse = aritmetica.aplicar_percentual(saldo, percentual)
        elif entrada.possui_repasse_especial and entrada.ciclo_atual < entrada.ciclos_para_zerar:
            # Special carry-over keeps the whole closing balance
            repasse = saldo
        else:
            repasse = 0
    else:
        repasse = 0
        excedente = -saldo if entrada.is_fim_periodo else 0

    valor_a_faturar = Decimal("0.00")
    observacao = None
    if excedente > 0:
        if taxa is not None:
            valor_a_faturar = calcular_valor_faturar(aritmetica.para_decimal(excedente), taxa)
        else:
            observacao = (
                f"Excedente de {aritmetica.formatar(excedente)} {aritmetica.descricao_unidade} "
                f"sem taxa vigente cadastrada"
            )
            logger.warning(f"No excess rate available for overage of {aritmetica.formatar(excedente)}")

    return ResultadoCalculo(
        modo=aritmetica.modo,
        baseline=baseline,
        repasse_mes_anterior=repasse_mes_anterior,
        saldo_a_utilizar=saldo_a_utilizar,
        consumo_chamados=consumo_chamados,
        requerimentos=requerimentos,
        reajustes=reajustes,
        consumo_total=consumo_total,
        saldo=saldo,
        repasse=repasse,
        excedente=excedente,
        valor_a_transportar=valor_a_transportar(saldo, repasse, entrada.is_fim_periodo),
        valor_a_faturar=valor_a_faturar,
        is_fim_periodo=entrada.is_fim_periodo,
        percentual_repasse_mensal=percentual,
        taxa_hora_utilizada=taxa,
        observacao=observacao,
    )


def descricao_faturamento(
    modo: Union[BillingMode, str],
    excedente: int,
    valor_a_faturar: Decimal,
    periodo: Periodo,
) -> Optional[str]:
    """Billing line for a month with overage, None when there is nothing to bill."""
    if excedente <= 0:
        return None
    aritmetica = aritmetica_para(modo)
    # Brazilian number format: 1.234,56
    valor = f"{Decimal(valor_a_faturar):,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return (
        f"Excedente de {aritmetica.formatar(excedente)} {aritmetica.descricao_unidade} "
        f"no período {periodo} - Valor: R$ {valor}"
    )
