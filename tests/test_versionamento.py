"""
Banco de Horas - Version History Tests

Tests for snapshots, version diffs and chain integrity.
"""

from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.banco_horas import BancoHorasVersao, EmpresaCliente, TipoMudanca
from app.services.banco_horas.reajuste_service import ReajusteService
from app.services.banco_horas.versionamento_service import (
    VersionamentoService,
    criar_snapshot,
    diff_dados,
    diff_versoes,
)
from app.services.banco_horas.vigencia import Periodo
from app.utils.error_handling import NotFoundException, PersistenceException


MOTIVO = "Correção de apontamento do chamado 4521"


# =============================================================================
# DIFFS
# =============================================================================

class TestDiff:
    """Tests for field-level comparison of snapshots."""

    def test_modified_fields(self):
        diff = diff_dados(
            {"saldo": "-20:00", "excedente": "00:00", "modo": "horas"},
            {"saldo": "-30:00", "excedente": "00:00", "modo": "horas"},
        )
        assert [(c.campo, c.valor_anterior, c.valor_novo) for c in diff.campos_modificados] == [
            ("saldo", "-20:00", "-30:00")
        ]
        assert diff.campos_adicionados == []
        assert diff.campos_removidos == []
        assert not diff.vazio

    def test_added_and_removed_fields(self):
        diff = diff_dados({"observacao": "sem taxa", "saldo": "01:00"}, {"saldo": "01:00", "taxa": "150.00"})
        assert diff.campos_adicionados == ["taxa"]
        assert diff.campos_removidos == ["observacao"]

    def test_none_and_empty_values_are_equal(self):
        diff = diff_dados({"observacao": None, "taxa": ""}, {"observacao": "", "taxa": None})
        assert diff.vazio

    def test_new_key_without_value_is_added(self):
        diff = diff_dados({"saldo": "01:00"}, {"saldo": "01:00", "observacao": None})
        assert diff.campos_adicionados == ["observacao"]
        assert diff.campos_modificados == []

    def test_removed_key_without_value_is_removed(self):
        diff = diff_dados({"saldo": "01:00", "observacao": ""}, {"saldo": "01:00"})
        assert diff.campos_removidos == ["observacao"]
        assert diff.campos_adicionados == []

    def test_identical_snapshots(self):
        dados = {"saldo": "10:00", "repasse": "05:00"}
        assert diff_dados(dados, dict(dados)).vazio

    def test_diff_versoes_uses_resulting_snapshots(self):
        v1 = SimpleNamespace(dados_anteriores={}, dados_novos={"saldo": "10:00"})
        v2 = SimpleNamespace(dados_anteriores={"saldo": "10:00"}, dados_novos={"saldo": "12:30"})
        diff = diff_versoes(v1, v2)
        assert diff.campos_modificados[0].campo == "saldo"
        assert diff.campos_modificados[0].valor_novo == "12:30"

    def test_snapshot_of_missing_calculation(self):
        assert criar_snapshot(None) == {}


# =============================================================================
# STORED HISTORY
# =============================================================================

class TestHistorico:
    """Tests for version history stored by the cascade."""

    @pytest.mark.asyncio
    async def test_snapshot_fields(self, db_session: AsyncSession, empresa_horas: EmpresaCliente):
        calculo = await ReajusteService(db_session).obter_ou_calcular(empresa_horas.id, Periodo(2024, 3))

        snapshot = criar_snapshot(calculo)

        assert snapshot["modo"] == "horas"
        assert (snapshot["mes"], snapshot["ano"]) == (3, 2024)
        assert snapshot["excedente"] == "20:00"
        assert snapshot["valor_a_transportar"] == "00:00"
        assert snapshot["valor_a_faturar"] == "3000.00"
        assert snapshot["is_fim_periodo"] is True
        assert "versao" not in snapshot
        assert "id" not in snapshot

    @pytest.mark.asyncio
    async def test_list_and_compare(self, db_session: AsyncSession, empresa_horas: EmpresaCliente):
        service = ReajusteService(db_session)
        await service.calcular_vigencia(empresa_horas.id, Periodo(2024, 1))
        await service.aplicar_reajuste(empresa_horas.id, Periodo(2024, 1), "-10:00", MOTIVO, "carla.dias")

        versionamento = VersionamentoService(db_session)
        versoes = await versionamento.listar_versoes_periodo(empresa_horas.id, Periodo(2024, 3))
        assert [v.versao_nova for v in versoes] == [2, 1]

        v2, v1 = versoes
        _, _, diff = await versionamento.comparar(v1.id, v2.id)
        modificados = {c.campo: (c.valor_anterior, c.valor_novo) for c in diff.campos_modificados}

        assert modificados["repasse_mes_anterior"] == ("-10:00", "-20:00")
        assert modificados["excedente"] == ("20:00", "30:00")
        assert modificados["valor_a_faturar"] == ("3000.00", "4500.00")
        assert "baseline" not in modificados

    @pytest.mark.asyncio
    async def test_chain_is_gapless(self, db_session: AsyncSession, empresa_horas: EmpresaCliente):
        service = ReajusteService(db_session)
        jan, _, _ = await service.calcular_vigencia(empresa_horas.id, Periodo(2024, 1))
        calculo_id = jan.calculo_id
        for valor in ("+01:00", "-02:00", "+03:00"):
            await service.aplicar_reajuste(empresa_horas.id, Periodo(2024, 1), valor, MOTIVO, "carla.dias")

        cadeia = await VersionamentoService(db_session).verificar_cadeia(calculo_id)

        assert cadeia.valida
        assert cadeia.total_versoes == 4
        assert cadeia.problemas == []

    @pytest.mark.asyncio
    async def test_chain_without_versions(self, db_session: AsyncSession):
        cadeia = await VersionamentoService(db_session).verificar_cadeia(uuid4())
        assert not cadeia.valida
        assert cadeia.problemas == ["No versions recorded"]

    @pytest.mark.asyncio
    async def test_unknown_version(self, db_session: AsyncSession):
        with pytest.raises(NotFoundException):
            await VersionamentoService(db_session).buscar_versao(uuid4())

    @pytest.mark.asyncio
    async def test_out_of_sequence_version_rejected(self, db_session: AsyncSession, empresa_horas: EmpresaCliente):
        calculo = await ReajusteService(db_session).obter_ou_calcular(empresa_horas.id, Periodo(2024, 1))

        # Version 1 is already recorded for this calculation row
        with pytest.raises(PersistenceException):
            await VersionamentoService(db_session).registrar_versao(
                calculo.calculo_id, None, calculo, TipoMudanca.RECALCULO, MOTIVO, "carla.dias"
            )

    @pytest.mark.asyncio
    async def test_duplicate_version_rejected_by_database(
        self, db_session: AsyncSession, empresa_horas: EmpresaCliente
    ):
        calculo = await ReajusteService(db_session).obter_ou_calcular(empresa_horas.id, Periodo(2024, 1))

        db_session.add(BancoHorasVersao(
            id=uuid4(),
            calculo_id=calculo.calculo_id,
            empresa_id=empresa_horas.id,
            mes=1,
            ano=2024,
            versao_anterior=0,
            versao_nova=1,
            tipo_mudanca="recalculo",
            dados_anteriores={},
            dados_novos={},
            motivo=MOTIVO,
            created_by="carla.dias",
        ))
        with pytest.raises(IntegrityError):
            await db_session.flush()
        await db_session.rollback()
