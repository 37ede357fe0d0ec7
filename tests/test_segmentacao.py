"""
Banco de Horas - Segmentation Tests

Tests for:
- Allocation set validation
- Largest-remainder distribution
- Segment sums matching consolidated values
- Degraded segmented view on consistency failure
"""

import random
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.banco_horas import EmpresaCliente
from app.services.banco_horas import segmentacao
from app.services.banco_horas.calculo_engine import EntradaCalculo, calcular_banco_horas
from app.services.banco_horas.quantidades import BillingMode
from app.services.banco_horas.reajuste_service import ReajusteService
from app.services.banco_horas.segmentacao import (
    Alocacao,
    CAMPOS_SEGMENTADOS,
    SegmentacaoService,
    distribuir,
    projetar_segmentos,
    validar_alocacoes,
    validar_consistencia,
)
from app.services.banco_horas.vigencia import Periodo
from app.utils.error_handling import ConsistencyException, InvalidAllocationException, NotFoundException


def alocacoes(*percentuais, ativo=True):
    return [
        Alocacao(id=f"aloc-{i}", nome=f"Centro {i}", percentual_baseline=Decimal(str(p)), ativo=ativo)
        for i, p in enumerate(percentuais)
    ]


def resultado_horas(**overrides):
    dados = dict(
        modo=BillingMode.HORAS,
        baseline="160:00",
        repasse_mes_anterior="-12:07",
        consumo_chamados="171:13",
        requerimentos="03:01",
        reajustes="-00:17",
        percentual_repasse_mensal=50,
        is_fim_periodo=True,
        taxa_hora_excedente=Decimal("137.33"),
    )
    dados.update(overrides)
    return calcular_banco_horas(EntradaCalculo(**dados))


# =============================================================================
# ALLOCATION VALIDATION
# =============================================================================

class TestValidarAlocacoes:
    """Tests for allocation set checks."""

    def test_valid_set(self):
        valido, erros, soma = validar_alocacoes(alocacoes(50, 30, 20))
        assert valido
        assert erros == []
        assert soma == Decimal("100")

    def test_decimal_percentages(self):
        valido, _, soma = validar_alocacoes(alocacoes("33.33", "33.33", "33.34"))
        assert valido
        assert soma == Decimal("100.00")

    def test_sum_not_100(self):
        valido, erros, soma = validar_alocacoes(alocacoes(50, 30))
        assert not valido
        assert soma == Decimal("80")
        assert any("100%" in erro for erro in erros)

    def test_inactive_allocations_do_not_count(self):
        conjunto = alocacoes(60, 40) + alocacoes(25, ativo=False)
        valido, _, soma = validar_alocacoes(conjunto)
        assert valido
        assert soma == Decimal("100")

    def test_no_active_allocation(self):
        valido, erros, _ = validar_alocacoes(alocacoes(100, ativo=False))
        assert not valido
        assert "At least one active allocation is required" in erros

    def test_out_of_range_and_missing_name(self):
        conjunto = [
            Alocacao(id="a", nome="", percentual_baseline=Decimal("120")),
            Alocacao(id="b", nome="Outro", percentual_baseline=Decimal("-20")),
        ]
        valido, erros, soma = validar_alocacoes(conjunto)
        assert not valido
        assert soma == Decimal("100")
        assert len(erros) == 3

    def test_non_numeric_percentage(self):
        conjunto = [Alocacao(id="a", nome="A", percentual_baseline="abc")]
        valido, erros, _ = validar_alocacoes(conjunto)
        assert not valido
        assert any("must be a number" in erro for erro in erros)


# =============================================================================
# DISTRIBUTION
# =============================================================================

class TestDistribuir:
    """Tests for the largest-remainder split."""

    def test_exact_split(self):
        assert distribuir(100, alocacoes(50, 30, 20)) == {"aloc-0": 50, "aloc-1": 30, "aloc-2": 20}

    def test_remainder_goes_to_largest_fraction(self):
        # 3.333, 3.333 and 3.334: the leftover unit goes to the largest remainder
        assert distribuir(10, alocacoes("33.33", "33.33", "33.34")) == {"aloc-0": 3, "aloc-1": 3, "aloc-2": 4}

    def test_ties_resolved_by_id(self):
        assert distribuir(1, alocacoes(50, 50)) == {"aloc-0": 1, "aloc-1": 0}

    def test_negative_total(self):
        partes = distribuir(-7, alocacoes(50, 50))
        assert sum(partes.values()) == -7
        assert sorted(partes.values()) == [-4, -3]

    def test_zero_percent_allocation(self):
        partes = distribuir(9, alocacoes(0, 100))
        assert partes == {"aloc-0": 0, "aloc-1": 9}

    def test_sum_always_matches_total(self):
        gerador = random.Random(20240301)
        for _ in range(300):
            quantidade = gerador.randint(1, 7)
            cortes = sorted(gerador.randint(0, 10000) for _ in range(quantidade - 1))
            pontos = [0] + cortes + [10000]
            percentuais = [Decimal(b - a) / 100 for a, b in zip(pontos, pontos[1:])]
            conjunto = [
                Alocacao(id=uuid4(), nome=f"C{i}", percentual_baseline=p) for i, p in enumerate(percentuais)
            ]
            total = gerador.randint(-100000, 100000)

            partes = distribuir(total, conjunto)

            assert sum(partes.values()) == total
            for alocacao in conjunto:
                exata = Decimal(total) * alocacao.percentual_baseline / 100
                assert abs(Decimal(partes[str(alocacao.id)]) - exata) < 1


# =============================================================================
# PROJECTION AND CONSISTENCY
# =============================================================================

class TestProjetarSegmentos:
    """Tests for splitting a calculation across allocations."""

    def test_segments_add_up(self):
        calculo = resultado_horas()
        segmentos = projetar_segmentos(calculo, alocacoes("33.33", "33.33", "33.34"))

        assert len(segmentos) == 3
        for campo in CAMPOS_SEGMENTADOS:
            assert sum(getattr(s, campo) for s in segmentos) == getattr(calculo, campo)
        assert sum(s.valor_a_faturar for s in segmentos) == calculo.valor_a_faturar
        validar_consistencia(calculo, segmentos)

    def test_segment_values_follow_percentages(self):
        calculo = resultado_horas(consumo_chamados="100:00", repasse_mes_anterior="00:00", requerimentos="00:00",
                                  reajustes="00:00", is_fim_periodo=False)
        financeiro, logistica = projetar_segmentos(calculo, alocacoes(75, 25))

        assert financeiro.formatar()["baseline"] == "120:00"
        assert logistica.formatar()["baseline"] == "40:00"
        assert financeiro.formatar()["saldo"] == "45:00"
        assert logistica.formatar()["saldo"] == "15:00"
        assert financeiro.formatar()["modo"] == "horas"

    def test_only_active_allocations_get_segments(self):
        conjunto = alocacoes(60, 40) + [Alocacao(id="old", nome="Antigo", percentual_baseline=Decimal("50"), ativo=False)]
        segmentos = projetar_segmentos(resultado_horas(), conjunto)
        assert [s.alocacao_id for s in segmentos] == ["aloc-0", "aloc-1"]

    def test_ticket_mode(self):
        calculo = calcular_banco_horas(EntradaCalculo(
            modo=BillingMode.TICKETS,
            baseline=50,
            repasse_mes_anterior=3,
            consumo_chamados=61,
            requerimentos=4,
            reajustes=1,
            is_fim_periodo=True,
            taxa_hora_excedente=Decimal("80.00"),
        ))
        segmentos = projetar_segmentos(calculo, alocacoes(50, 30, 20))

        assert [s.excedente for s in segmentos] == [6, 3, 2]
        assert sum(s.valor_a_faturar for s in segmentos) == Decimal("880.00")

    def test_invalid_allocations_rejected(self):
        with pytest.raises(InvalidAllocationException):
            projetar_segmentos(resultado_horas(), alocacoes(50, 40))

    def test_consistency_detects_divergence(self):
        calculo = resultado_horas()
        segmentos = projetar_segmentos(calculo, alocacoes(50, 50))
        segmentos[0].saldo += 1

        with pytest.raises(ConsistencyException) as exc:
            validar_consistencia(calculo, segmentos)

        assert [d["campo"] for d in exc.value.divergencias] == ["saldo"]


# =============================================================================
# SEGMENTED VIEW
# =============================================================================

class TestSegmentacaoService:
    """Tests for the segmented read path."""

    @pytest.mark.asyncio
    async def test_view_of_stored_calculation(
        self, db_session: AsyncSession, empresa_horas: EmpresaCliente, alocacoes_horas
    ):
        await ReajusteService(db_session).calcular_vigencia(empresa_horas.id, Periodo(2024, 3))

        visao = await SegmentacaoService(db_session).obter_visao_segmentada(empresa_horas.id, Periodo(2024, 3))

        assert not visao.degradado
        assert [s.nome for s in visao.segmentos] == ["Financeiro", "Logistica", "RH"]
        assert [s.excedente for s in visao.segmentos] == [600, 360, 240]
        assert [s.valor_a_faturar for s in visao.segmentos] == [
            Decimal("1500.00"),
            Decimal("900.00"),
            Decimal("600.00"),
        ]

    @pytest.mark.asyncio
    async def test_view_degrades_on_mismatch(
        self, db_session: AsyncSession, empresa_horas: EmpresaCliente, alocacoes_horas, monkeypatch
    ):
        await ReajusteService(db_session).calcular_vigencia(empresa_horas.id, Periodo(2024, 1))
        original = segmentacao.projetar_segmentos

        def projetar_com_erro(calculo, alocacoes):
            segmentos = original(calculo, alocacoes)
            segmentos[0].consumo_total += 1
            return segmentos

        monkeypatch.setattr(segmentacao, "projetar_segmentos", projetar_com_erro)

        visao = await SegmentacaoService(db_session).obter_visao_segmentada(empresa_horas.id, Periodo(2024, 1))

        assert visao.degradado
        assert all(s.degradado for s in visao.segmentos)
        assert visao.divergencias[0]["campo"] == "consumo_total"

    @pytest.mark.asyncio
    async def test_view_without_calculation(self, db_session: AsyncSession, empresa_horas: EmpresaCliente):
        with pytest.raises(NotFoundException):
            await SegmentacaoService(db_session).obter_visao_segmentada(empresa_horas.id, Periodo(2024, 2))

    @pytest.mark.asyncio
    async def test_view_without_allocations(self, db_session: AsyncSession, empresa_horas: EmpresaCliente):
        await ReajusteService(db_session).calcular_vigencia(empresa_horas.id, Periodo(2024, 1))
        with pytest.raises(InvalidAllocationException):
            await SegmentacaoService(db_session).obter_visao_segmentada(empresa_horas.id, Periodo(2024, 1))
