"""
Banco de Horas - Calculation Engine Unit Tests

Tests for the pure monthly derivation:
- Balance and consumption formulas
- Carry-over and overage at window end
- Special carry-over cycles
- Overage valuation and missing rates
- Input validation
"""

import pytest
from decimal import Decimal

from app.services.banco_horas.calculo_engine import (
    EntradaCalculo,
    calcular_banco_horas,
    descricao_faturamento,
    valor_a_transportar,
)
from app.services.banco_horas.quantidades import BillingMode, Horas
from app.services.banco_horas.vigencia import Periodo
from app.utils.error_handling import BillingModeMismatchException, ValidationException


def entrada_horas(**overrides) -> EntradaCalculo:
    dados = dict(
        modo=BillingMode.HORAS,
        baseline="160:00",
        repasse_mes_anterior="00:00",
        consumo_chamados="00:00",
        requerimentos="00:00",
        reajustes="00:00",
        percentual_repasse_mensal=100,
    )
    dados.update(overrides)
    return EntradaCalculo(**dados)


def entrada_tickets(**overrides) -> EntradaCalculo:
    dados = dict(
        modo=BillingMode.TICKETS,
        baseline=50,
        repasse_mes_anterior=0,
        consumo_chamados=0,
        requerimentos=0,
        reajustes=0,
        percentual_repasse_mensal=100,
    )
    dados.update(overrides)
    return EntradaCalculo(**dados)


# =============================================================================
# REFERENCE SCENARIOS
# =============================================================================

class TestCenariosReferencia:
    """Worked examples for both billing modes."""

    def test_hours_mode_with_adjustment_credit(self):
        resultado = calcular_banco_horas(entrada_horas(
            repasse_mes_anterior="20:00",
            consumo_chamados="150:00",
            requerimentos="30:00",
            reajustes="10:00",
            percentual_repasse_mensal=50,
        ))
        formatado = resultado.formatar()

        assert formatado["saldo_a_utilizar"] == "180:00"
        assert formatado["consumo_total"] == "170:00"
        assert formatado["saldo"] == "10:00"
        assert formatado["repasse"] == "05:00"
        assert formatado["excedente"] == "00:00"
        assert formatado["valor_a_transportar"] == "05:00"
        assert resultado.valor_a_faturar == Decimal("0.00")

    def test_ticket_mode_rounds_half_carry_over_up(self):
        resultado = calcular_banco_horas(entrada_tickets(
            repasse_mes_anterior=5,
            consumo_chamados=45,
            requerimentos=8,
            reajustes=3,
            percentual_repasse_mensal=50,
        ))

        assert resultado.saldo_a_utilizar == 55
        assert resultado.consumo_total == 50
        assert resultado.saldo == 5
        assert resultado.repasse == 3
        assert resultado.excedente == 0
        assert resultado.formatar()["repasse"] == "3"

    def test_negative_adjustment_increases_consumption(self):
        resultado = calcular_banco_horas(entrada_horas(
            consumo_chamados="100:00",
            reajustes="-10:00",
        ))
        assert resultado.consumo_total == Horas.parse("110:00").minutos
        assert resultado.saldo == Horas.parse("50:00").minutos


# =============================================================================
# CARRY-OVER AND OVERAGE
# =============================================================================

class TestRepasseExcedente:
    """Tests for the sign and window-end rules."""

    def test_positive_balance_mid_window_carries_percentage(self):
        resultado = calcular_banco_horas(entrada_horas(
            consumo_chamados="150:00",
            percentual_repasse_mensal=50,
        ))
        assert resultado.saldo == 600
        assert resultado.repasse == 300
        assert resultado.excedente == 0

    def test_zero_percent_carries_nothing(self):
        resultado = calcular_banco_horas(entrada_horas(
            consumo_chamados="150:00",
            percentual_repasse_mensal=0,
        ))
        assert resultado.repasse == 0
        assert resultado.valor_a_transportar == 0

    def test_negative_balance_mid_window_is_carried_not_billed(self):
        resultado = calcular_banco_horas(entrada_horas(
            consumo_chamados="170:00",
            taxa_hora_excedente=Decimal("150"),
        ))
        assert resultado.saldo == -600
        assert resultado.repasse == 0
        assert resultado.excedente == 0
        assert resultado.valor_a_faturar == Decimal("0.00")
        assert resultado.valor_a_transportar == -600

    def test_negative_balance_at_window_end_is_billed(self):
        resultado = calcular_banco_horas(entrada_horas(
            consumo_chamados="170:30",
            is_fim_periodo=True,
            taxa_hora_excedente=Decimal("150.00"),
        ))
        assert resultado.excedente == 630
        assert resultado.repasse == 0
        assert resultado.valor_a_faturar == Decimal("1575.00")
        assert resultado.valor_a_transportar == 0
        assert resultado.taxa_hora_utilizada == Decimal("150.00")

    def test_positive_balance_at_window_end_is_cleared(self):
        resultado = calcular_banco_horas(entrada_horas(
            consumo_chamados="100:00",
            is_fim_periodo=True,
        ))
        assert resultado.saldo == 3600
        assert resultado.repasse == 0
        assert resultado.excedente == 0

    def test_exact_zero_balance(self):
        resultado = calcular_banco_horas(entrada_horas(consumo_chamados="160:00", is_fim_periodo=True))
        assert resultado.saldo == 0
        assert resultado.repasse == 0
        assert resultado.excedente == 0
        assert resultado.formatar()["saldo"] == "00:00"

    def test_valor_a_transportar(self):
        assert valor_a_transportar(600, 300, False) == 300
        assert valor_a_transportar(-600, 0, False) == -600
        assert valor_a_transportar(-600, 0, True) == 0


class TestRepasseEspecial:
    """Tests for special carry-over across windows."""

    def test_keeps_closing_balance_before_last_cycle(self):
        resultado = calcular_banco_horas(entrada_horas(
            consumo_chamados="140:00",
            is_fim_periodo=True,
            percentual_repasse_mensal=50,
            possui_repasse_especial=True,
            ciclo_atual=1,
            ciclos_para_zerar=2,
        ))
        assert resultado.repasse == Horas.parse("20:00").minutos
        assert resultado.valor_a_transportar == resultado.repasse

    def test_zeroes_on_last_cycle(self):
        resultado = calcular_banco_horas(entrada_horas(
            consumo_chamados="140:00",
            is_fim_periodo=True,
            possui_repasse_especial=True,
            ciclo_atual=2,
            ciclos_para_zerar=2,
        ))
        assert resultado.repasse == 0

    def test_does_not_affect_overage(self):
        resultado = calcular_banco_horas(entrada_horas(
            consumo_chamados="170:00",
            is_fim_periodo=True,
            possui_repasse_especial=True,
            ciclo_atual=1,
            ciclos_para_zerar=3,
            taxa_hora_excedente=Decimal("100"),
        ))
        assert resultado.excedente == 600
        assert resultado.valor_a_faturar == Decimal("1000.00")


# =============================================================================
# VALUATION
# =============================================================================

class TestValorFaturar:
    """Tests for overage valuation."""

    def test_missing_rate_bills_zero_with_note(self):
        resultado = calcular_banco_horas(entrada_tickets(
            consumo_chamados=60,
            is_fim_periodo=True,
        ))
        assert resultado.excedente == 10
        assert resultado.valor_a_faturar == Decimal("0.00")
        assert resultado.taxa_hora_utilizada is None
        assert "sem taxa vigente" in resultado.observacao

    def test_rounds_to_cents_half_up(self):
        # 00:01 at R$ 0,30/h = 0.005 -> 0.01
        resultado = calcular_banco_horas(entrada_horas(
            consumo_chamados="160:01",
            is_fim_periodo=True,
            taxa_hora_excedente=Decimal("0.30"),
        ))
        assert resultado.valor_a_faturar == Decimal("0.01")

    def test_ticket_overage_value(self):
        resultado = calcular_banco_horas(entrada_tickets(
            consumo_chamados=55,
            requerimentos=5,
            is_fim_periodo=True,
            taxa_hora_excedente=Decimal("80.00"),
        ))
        assert resultado.excedente == 10
        assert resultado.valor_a_faturar == Decimal("800.00")

    def test_descricao_faturamento(self):
        descricao = descricao_faturamento(BillingMode.HORAS, 630, Decimal("1575.00"), Periodo(2024, 3))
        assert descricao == "Excedente de 10:30 horas no período 03/2024 - Valor: R$ 1.575,00"

    def test_descricao_faturamento_without_overage(self):
        assert descricao_faturamento("tickets", 0, Decimal("0"), Periodo(2024, 3)) is None


# =============================================================================
# DETERMINISM AND VALIDATION
# =============================================================================

class TestValidacao:
    """Tests for rejected inputs and repeatability."""

    def test_same_inputs_same_result(self):
        entrada = entrada_horas(
            repasse_mes_anterior="-12:15",
            consumo_chamados="99:59",
            requerimentos="01:01",
            reajustes="-00:30",
            percentual_repasse_mensal=Decimal("33.3"),
        )
        assert calcular_banco_horas(entrada) == calcular_banco_horas(entrada)

    def test_negative_baseline(self):
        with pytest.raises(ValidationException) as exc:
            calcular_banco_horas(entrada_horas(baseline="-01:00"))
        assert exc.value.field == "baseline"

    @pytest.mark.parametrize("percentual", [-1, 101, "abc", True])
    def test_percentual_out_of_range(self, percentual):
        with pytest.raises(ValidationException):
            calcular_banco_horas(entrada_horas(percentual_repasse_mensal=percentual))

    @pytest.mark.parametrize("ciclo_atual, ciclos_para_zerar", [(0, 1), (1, 0), (1.5, 2)])
    def test_invalid_cycles(self, ciclo_atual, ciclos_para_zerar):
        with pytest.raises(ValidationException):
            calcular_banco_horas(entrada_horas(ciclo_atual=ciclo_atual, ciclos_para_zerar=ciclos_para_zerar))

    def test_mode_mismatch(self):
        with pytest.raises(BillingModeMismatchException):
            calcular_banco_horas(entrada_horas(consumo_chamados=10))
        with pytest.raises(BillingModeMismatchException):
            calcular_banco_horas(entrada_tickets(reajustes="01:00"))

    def test_negative_rate(self):
        with pytest.raises(ValidationException):
            calcular_banco_horas(entrada_horas(taxa_hora_excedente=Decimal("-1")))
