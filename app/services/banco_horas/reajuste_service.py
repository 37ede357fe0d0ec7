"""
Banco de Horas - Adjustment Cascade Service

Applies manual adjustments and recalculates every affected month.

A month's carry-over feeds the next month, so a change to month P changes
P+1, P+2, ... up to the end of P's apportionment window (or the last month
already calculated, whichever is later). Every recalculated month gets a new
immutable calculation row and a version entry, and the whole cascade is
committed in a single transaction. A cascade longer than
banco_horas_max_meses_cascata months is refused before anything is written.

Cascades of one company are exclusive. A second cascade started while one is
running is rejected with ConcurrencyException instead of waiting. First
calculations of a month wait for the running cascade instead. The company
row is also locked FOR UPDATE so the rule holds across processes.

State machine: IDLE -> APPLYING -> RECALCULATING -> COMMITTED, or FAILED.
"""

import asyncio
import logging
import uuid
import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

from sqlalchemy import select, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.banco_horas import (
    BancoHorasCalculo,
    BancoHorasReajuste,
    BancoHorasVersao,
    EmpresaCliente,
    TipoMudanca,
    TipoReajuste,
)
from app.services.banco_horas.calculo_engine import (
    CAMPOS_QUANTIDADE,
    EntradaCalculo,
    ResultadoCalculo,
    calcular_banco_horas,
)
from app.services.banco_horas.integracao import (
    ConfiguracaoEmpresa,
    ConfiguracaoEmpresaProvider,
    ConsumoProvider,
    RequerimentosProvider,
    SQLConfiguracaoEmpresaProvider,
    SQLConsumoProvider,
    SQLRequerimentosProvider,
    SQLTaxaProvider,
    TaxaProvider,
)
from app.services.banco_horas.quantidades import aritmetica_para
from app.services.banco_horas.versionamento_service import (
    VersionamentoService,
    buscar_calculo_atual,
    ultimo_periodo_calculado,
)
from app.services.banco_horas.vigencia import (
    Periodo,
    fim_da_vigencia,
    intervalo,
    is_fim_periodo,
    meses_da_vigencia,
    meses_passados,
)
from app.utils.error_handling import (
    AppException,
    ConcurrencyException,
    NotFoundException,
    PersistenceException,
    ValidationException,
)

logger = logging.getLogger(__name__)


MOTIVO_CALCULO_INICIAL = "Cálculo inicial"
AUTOR_SISTEMA = "sistema"


class EstadoCascata(str, Enum):
    """Lifecycle of one cascade run."""
    IDLE = "idle"
    APPLYING = "applying"
    RECALCULATING = "recalculating"
    COMMITTED = "committed"
    FAILED = "failed"


# One lock per company, shared by every service instance in the process.
# Entries disappear once no caller holds or awaits the lock.
_locks_por_empresa: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_da_empresa(empresa_id: uuid.UUID) -> asyncio.Lock:
    return _locks_por_empresa.setdefault(str(empresa_id), asyncio.Lock())


def cascata_em_andamento(empresa_id: uuid.UUID) -> bool:
    lock = _locks_por_empresa.get(str(empresa_id))
    return lock is not None and lock.locked()


@dataclass
class ResultadoCascata:
    """Outcome of a committed cascade."""

    empresa_id: uuid.UUID
    estado: EstadoCascata
    periodo_inicial: Periodo
    periodos_recalculados: List[Periodo] = field(default_factory=list)
    calculos: List[BancoHorasCalculo] = field(default_factory=list)
    versoes: List[BancoHorasVersao] = field(default_factory=list)
    reajuste: Optional[BancoHorasReajuste] = None

    @property
    def versao_ids(self) -> List[uuid.UUID]:
        return [v.id for v in self.versoes]


class ReajusteService:
    """Service for adjustments and cascading recalculation of the ledger."""

    def __init__(
        self,
        db: AsyncSession,
        consumo_provider: Optional[ConsumoProvider] = None,
        requerimentos_provider: Optional[RequerimentosProvider] = None,
        configuracao_provider: Optional[ConfiguracaoEmpresaProvider] = None,
        taxa_provider: Optional[TaxaProvider] = None,
    ):
        self.db = db
        self.consumo_provider = consumo_provider or SQLConsumoProvider(db)
        self.requerimentos_provider = requerimentos_provider or SQLRequerimentosProvider(db)
        self.configuracao_provider = configuracao_provider or SQLConfiguracaoEmpresaProvider(db)
        self.taxa_provider = taxa_provider or SQLTaxaProvider(db)
        self.versionamento = VersionamentoService(db)
        self.estado = EstadoCascata.IDLE

    # ===========================================
    # PUBLIC OPERATIONS
    # ===========================================

    async def aplicar_reajuste(
        self,
        empresa_id: uuid.UUID,
        periodo: Periodo,
        valor: Any,
        motivo: str,
        autor: str,
    ) -> ResultadoCascata:
        """
        Record an adjustment for a month and cascade the recalculation.

        Args:
            empresa_id: Company
            periodo: Month the adjustment applies to
            valor: Signed quantity in the company's billing mode
                ("-10:00" / "+02:30" for hours, -3 / 5 for tickets)
            motivo: Justification, at least the configured number of
                characters after trimming
            autor: User recording the adjustment

        Raises:
            ConcurrencyException: a cascade is already running for the company
            ValidationException: invalid justification, value or period
            PersistenceException: the transaction failed and was rolled back
        """

        async def trabalho(configuracao: ConfiguracaoEmpresa) -> ResultadoCascata:
            aritmetica = aritmetica_para(configuracao.modo)
            observacao = self._validar_motivo(motivo)
            autor_validado = self._validar_autor(autor)
            unidades = aritmetica.parse(valor, "valor")
            if unidades == 0:
                raise ValidationException(message="Adjustment value cannot be zero", field="valor")
            self._validar_periodo(configuracao, periodo)

            self.estado = EstadoCascata.APPLYING
            return await self._em_transacao(
                configuracao,
                periodo,
                lambda: self._persistir_reajuste(configuracao, periodo, unidades, observacao, autor_validado),
                TipoMudanca.REAJUSTE,
                observacao,
                autor_validado,
            )

        return await self._executar_exclusivo(empresa_id, "adjustment", trabalho)

    async def inativar_reajuste(self, reajuste_id: uuid.UUID, motivo: str, autor: str) -> ResultadoCascata:
        """Deactivate an adjustment and cascade a correction from its month."""
        reajuste = await self.db.get(BancoHorasReajuste, reajuste_id)
        if reajuste is None:
            raise NotFoundException("BancoHorasReajuste", reajuste_id)
        empresa_id = reajuste.empresa_id
        periodo = Periodo(ano=reajuste.ano, mes=reajuste.mes)

        async def trabalho(configuracao: ConfiguracaoEmpresa) -> ResultadoCascata:
            observacao = self._validar_motivo(motivo)
            autor_validado = self._validar_autor(autor)
            if not reajuste.ativo:
                raise ValidationException(message="Adjustment is already inactive", field="reajuste_id")

            async def desativar() -> BancoHorasReajuste:
                reajuste.ativo = False
                reajuste.motivo_inativacao = observacao
                reajuste.inativado_por = autor_validado
                await self.db.flush()
                return reajuste

            self.estado = EstadoCascata.APPLYING
            return await self._em_transacao(
                configuracao, periodo, desativar, TipoMudanca.CORRECAO, observacao, autor_validado
            )

        return await self._executar_exclusivo(empresa_id, "adjustment inactivation", trabalho)

    async def recalcular_a_partir_de(
        self,
        empresa_id: uuid.UUID,
        periodo: Periodo,
        motivo: str,
        autor: str,
    ) -> ResultadoCascata:
        """Forced recalculation from a month onward, e.g. after a consumption import."""

        async def trabalho(configuracao: ConfiguracaoEmpresa) -> ResultadoCascata:
            if not motivo or not motivo.strip():
                raise ValidationException(message="A reason is required to recalculate", field="motivo")
            autor_validado = self._validar_autor(autor)
            self._validar_periodo(configuracao, periodo)

            self.estado = EstadoCascata.APPLYING
            return await self._em_transacao(
                configuracao, periodo, None, TipoMudanca.RECALCULO, motivo.strip(), autor_validado
            )

        return await self._executar_exclusivo(empresa_id, "forced recalculation", trabalho)

    async def obter_ou_calcular(
        self,
        empresa_id: uuid.UUID,
        periodo: Periodo,
        autor: str = AUTOR_SISTEMA,
    ) -> BancoHorasCalculo:
        """
        Current calculation of a month, computing it on first access.

        Missing earlier months of the contract are materialized first so the
        carry-over reaching this month is correct. While a cascade runs for
        the company this waits for it instead of failing.
        """
        atual = await buscar_calculo_atual(self.db, empresa_id, periodo)
        if atual is not None:
            return atual

        async def trabalho(configuracao: ConfiguracaoEmpresa) -> ResultadoCascata:
            self._validar_periodo(configuracao, periodo)
            self.estado = EstadoCascata.RECALCULATING
            resultado = ResultadoCascata(empresa_id=empresa_id, estado=self.estado, periodo_inicial=periodo)
            # The cascade we waited for may have calculated it already
            if await buscar_calculo_atual(self.db, empresa_id, periodo) is None:
                await self._gravar(lambda: self._materializar_bloqueado(configuracao, periodo, autor, resultado))
            return resultado

        await self._executar_exclusivo(empresa_id, "first calculation", trabalho, aguardar=True)
        return await buscar_calculo_atual(self.db, empresa_id, periodo)

    async def calcular_vigencia(
        self,
        empresa_id: uuid.UUID,
        periodo: Periodo,
        autor: str = AUTOR_SISTEMA,
    ) -> List[BancoHorasCalculo]:
        """Materialize every month of the window containing the period, in order."""

        async def trabalho(configuracao: ConfiguracaoEmpresa) -> ResultadoCascata:
            self._validar_periodo(configuracao, periodo)
            meses = meses_da_vigencia(periodo, configuracao.inicio_vigencia, configuracao.periodo_apuracao)
            self.estado = EstadoCascata.RECALCULATING
            resultado = ResultadoCascata(empresa_id=empresa_id, estado=self.estado, periodo_inicial=meses[0])
            await self._gravar(lambda: self._materializar_bloqueado(configuracao, meses[-1], autor, resultado))
            return resultado

        await self._executar_exclusivo(empresa_id, "window calculation", trabalho)

        configuracao = await self.configuracao_provider.obter(empresa_id)
        meses = meses_da_vigencia(periodo, configuracao.inicio_vigencia, configuracao.periodo_apuracao)
        calculos = []
        for mes in meses:
            calculos.append(await buscar_calculo_atual(self.db, empresa_id, mes))
        return calculos

    async def listar_reajustes(
        self,
        empresa_id: uuid.UUID,
        periodo: Optional[Periodo] = None,
    ) -> List[BancoHorasReajuste]:
        """Active adjustments of a company, newest first."""
        query = select(BancoHorasReajuste).where(
            BancoHorasReajuste.empresa_id == empresa_id,
            BancoHorasReajuste.ativo.is_(True),
        )
        if periodo is not None:
            query = query.where(
                BancoHorasReajuste.mes == periodo.mes,
                BancoHorasReajuste.ano == periodo.ano,
            )
        query = query.order_by(
            desc(BancoHorasReajuste.ano),
            desc(BancoHorasReajuste.mes),
            desc(BancoHorasReajuste.created_at),
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ===========================================
    # EXCLUSIVE SECTION AND TRANSACTION
    # ===========================================

    async def _executar_exclusivo(
        self,
        empresa_id: uuid.UUID,
        descricao: str,
        trabalho: Callable[[ConfiguracaoEmpresa], Awaitable[ResultadoCascata]],
        aguardar: bool = False,
    ) -> ResultadoCascata:
        lock = _lock_da_empresa(empresa_id)
        if lock.locked() and not aguardar:
            logger.warning(f"Rejected {descricao} for company {empresa_id}: cascade already in progress")
            self.estado = EstadoCascata.FAILED
            raise ConcurrencyException(empresa_id)

        async with lock:
            self.estado = EstadoCascata.IDLE
            try:
                configuracao = await self.configuracao_provider.obter(empresa_id)
                resultado = await trabalho(configuracao)
            except AppException:
                self.estado = EstadoCascata.FAILED
                raise

            self.estado = EstadoCascata.COMMITTED
            resultado.estado = self.estado
            logger.info(
                f"Committed {descricao} for company {empresa_id}: "
                f"{len(resultado.periodos_recalculados)} month(s), {len(resultado.versoes)} version(s)"
            )
            return resultado

    async def _gravar(self, escrita: Callable[[], Awaitable[Any]]) -> Any:
        """Run writes and commit, rolling everything back on failure."""
        try:
            retorno = await escrita()
            await self.db.commit()
            return retorno
        except SQLAlchemyError as exc:
            await self.db.rollback()
            self.estado = EstadoCascata.FAILED
            logger.error(f"Cascade transaction failed and was rolled back: {exc}")
            raise PersistenceException(original_error=exc) from exc
        except Exception as exc:
            await self.db.rollback()
            self.estado = EstadoCascata.FAILED
            logger.error(f"Cascade failed and was rolled back: {type(exc).__name__} - {exc}")
            raise

    async def _em_transacao(
        self,
        configuracao: ConfiguracaoEmpresa,
        periodo: Periodo,
        mudanca: Optional[Callable[[], Awaitable[BancoHorasReajuste]]],
        tipo_mudanca: TipoMudanca,
        motivo: str,
        autor: str,
    ) -> ResultadoCascata:
        logger.info(
            f"Cascade started for company {configuracao.empresa_id} from {periodo} ({tipo_mudanca.value})"
        )

        async def escrita() -> ResultadoCascata:
            await self._bloquear_empresa(configuracao.empresa_id)
            fim = await self._fim_da_cascata(configuracao, periodo)
            reajuste = await mudanca() if mudanca is not None else None
            resultado = ResultadoCascata(
                empresa_id=configuracao.empresa_id,
                estado=self.estado,
                periodo_inicial=periodo,
                reajuste=reajuste,
            )
            self.estado = EstadoCascata.RECALCULATING
            await self._cascata(configuracao, periodo, fim, tipo_mudanca, motivo, autor, resultado)
            return resultado

        return await self._gravar(escrita)

    async def _bloquear_empresa(self, empresa_id: uuid.UUID) -> None:
        # Ignored by SQLite; row lock on PostgreSQL
        await self.db.execute(
            select(EmpresaCliente.id).where(EmpresaCliente.id == empresa_id).with_for_update()
        )

    async def _materializar_bloqueado(
        self,
        configuracao: ConfiguracaoEmpresa,
        periodo: Periodo,
        autor: str,
        resultado: ResultadoCascata,
    ) -> None:
        await self._bloquear_empresa(configuracao.empresa_id)
        await self._materializar_ate(configuracao, periodo, autor, resultado)

    # ===========================================
    # CASCADE
    # ===========================================

    async def _cascata(
        self,
        configuracao: ConfiguracaoEmpresa,
        inicio: Periodo,
        fim: Periodo,
        tipo_mudanca: TipoMudanca,
        motivo: str,
        autor: str,
        resultado: ResultadoCascata,
    ) -> None:
        # Earlier months must exist so the carry-over into `inicio` is known
        if meses_passados(inicio, configuracao.inicio_vigencia) > 1:
            await self._materializar_ate(configuracao, inicio.anterior(), autor, resultado, propagar=False)

        repasse = await self._repasse_de_entrada(configuracao, inicio)
        for indice, periodo in enumerate(intervalo(inicio, fim)):
            primeiro = indice == 0
            calculo = await self._recalcular_periodo(
                configuracao,
                periodo,
                repasse,
                tipo_mudanca if primeiro else TipoMudanca.RECALCULO,
                motivo if primeiro else f"Recálculo em cascata a partir de {inicio}: {motivo}",
                autor,
                resultado,
                reajuste_id=resultado.reajuste.id if primeiro and resultado.reajuste is not None else None,
            )
            repasse = calculo.obter_quantidade("valor_a_transportar", calculo.modo)

    async def _fim_da_cascata(self, configuracao: ConfiguracaoEmpresa, inicio: Periodo) -> Periodo:
        fim = fim_da_vigencia(inicio, configuracao.inicio_vigencia, configuracao.periodo_apuracao)
        ultimo = await ultimo_periodo_calculado(self.db, configuracao.empresa_id)
        if ultimo is not None and ultimo > fim:
            fim = ultimo

        # The horizon always reaches the last calculated month
        limite = settings.banco_horas_max_meses_cascata
        meses = inicio.meses_ate(fim) + 1
        if meses > limite:
            logger.warning(
                f"Refused cascade for company {configuracao.empresa_id} from {inicio} to {fim}: "
                f"{meses} months, limit {limite}"
            )
            raise ValidationException(
                message=f"Recalculation from {inicio} would cover {meses} months, above the limit of {limite}",
                field="periodo",
                details={"inicio": str(inicio), "fim": str(fim), "meses": meses, "limite": limite},
            )
        return fim

    async def _materializar_ate(
        self,
        configuracao: ConfiguracaoEmpresa,
        periodo: Periodo,
        autor: str,
        resultado: ResultadoCascata,
        propagar: bool = True,
    ) -> None:
        """
        Calculate, in order, every missing month of the contract up to `periodo`.

        Months calculated later than a filled gap are recalculated onward
        unless `propagar` is False (the caller cascades them itself).
        """
        empresa_id = configuracao.empresa_id
        faltantes: List[Periodo] = []
        cursor = periodo
        while (
            meses_passados(cursor, configuracao.inicio_vigencia) >= 1
            and await buscar_calculo_atual(self.db, empresa_id, cursor) is None
        ):
            faltantes.append(cursor)
            cursor = cursor.anterior()
        if not faltantes:
            return

        for mes in reversed(faltantes):
            repasse = await self._repasse_de_entrada(configuracao, mes)
            calculo = await self._recalcular_periodo(
                configuracao, mes, repasse, TipoMudanca.RECALCULO, MOTIVO_CALCULO_INICIAL, autor, resultado
            )

        ultimo = await ultimo_periodo_calculado(self.db, empresa_id)
        if not propagar or ultimo is None or ultimo <= periodo:
            return

        logger.info(f"Filled gap up to {periodo} for company {empresa_id}; recalculating through {ultimo}")
        repasse = calculo.obter_quantidade("valor_a_transportar", calculo.modo)
        for mes in intervalo(periodo.proximo(), ultimo):
            calculo = await self._recalcular_periodo(
                configuracao,
                mes,
                repasse,
                TipoMudanca.RECALCULO,
                f"Recálculo em cascata a partir de {periodo}: {MOTIVO_CALCULO_INICIAL}",
                autor,
                resultado,
            )
            repasse = calculo.obter_quantidade("valor_a_transportar", calculo.modo)

    async def _repasse_de_entrada(self, configuracao: ConfiguracaoEmpresa, periodo: Periodo) -> int:
        if meses_passados(periodo, configuracao.inicio_vigencia) <= 1:
            return 0
        anterior = await buscar_calculo_atual(self.db, configuracao.empresa_id, periodo.anterior())
        if anterior is None:
            return 0
        return anterior.obter_quantidade("valor_a_transportar", anterior.modo)

    async def _soma_reajustes(self, configuracao: ConfiguracaoEmpresa, periodo: Periodo) -> int:
        result = await self.db.execute(
            select(BancoHorasReajuste).where(
                BancoHorasReajuste.empresa_id == configuracao.empresa_id,
                BancoHorasReajuste.mes == periodo.mes,
                BancoHorasReajuste.ano == periodo.ano,
                BancoHorasReajuste.ativo.is_(True),
            )
        )
        return sum(r.obter_quantidade("valor", configuracao.modo.value) for r in result.scalars().all())

    async def _recalcular_periodo(
        self,
        configuracao: ConfiguracaoEmpresa,
        periodo: Periodo,
        repasse_mes_anterior: int,
        tipo_mudanca: TipoMudanca,
        motivo: str,
        autor: str,
        resultado: ResultadoCascata,
        reajuste_id: Optional[uuid.UUID] = None,
    ) -> BancoHorasCalculo:
        empresa_id = configuracao.empresa_id
        aritmetica = aritmetica_para(configuracao.modo)

        atual = await buscar_calculo_atual(self.db, empresa_id, periodo)
        entrada = EntradaCalculo(
            modo=configuracao.modo,
            baseline=configuracao.baseline,
            repasse_mes_anterior=aritmetica.quantidade(repasse_mes_anterior),
            consumo_chamados=await self.consumo_provider.consultar(empresa_id, periodo),
            requerimentos=await self.requerimentos_provider.consultar(empresa_id, periodo),
            reajustes=aritmetica.quantidade(await self._soma_reajustes(configuracao, periodo)),
            percentual_repasse_mensal=configuracao.percentual_repasse_mensal,
            is_fim_periodo=is_fim_periodo(periodo, configuracao.inicio_vigencia, configuracao.periodo_apuracao),
            taxa_hora_excedente=await self.taxa_provider.taxa_do_mes(empresa_id, periodo, configuracao.modo),
            possui_repasse_especial=configuracao.possui_repasse_especial,
            ciclo_atual=configuracao.ciclo_atual,
            ciclos_para_zerar=configuracao.ciclos_para_zerar,
        )
        calculado = calcular_banco_horas(entrada)

        calculo = self._novo_calculo(
            calculado,
            empresa_id=empresa_id,
            periodo=periodo,
            calculo_id=atual.calculo_id if atual is not None else uuid.uuid4(),
            versao=atual.versao + 1 if atual is not None else 1,
            autor=autor,
        )
        self.db.add(calculo)
        await self.db.flush()

        versao = await self.versionamento.registrar_versao(
            calculo.calculo_id, atual, calculo, tipo_mudanca, motivo, autor, reajuste_id=reajuste_id
        )

        resultado.periodos_recalculados.append(periodo)
        resultado.calculos.append(calculo)
        resultado.versoes.append(versao)
        return calculo

    @staticmethod
    def _novo_calculo(
        calculado: ResultadoCalculo,
        empresa_id: uuid.UUID,
        periodo: Periodo,
        calculo_id: uuid.UUID,
        versao: int,
        autor: str,
    ) -> BancoHorasCalculo:
        modo = calculado.modo.value
        calculo = BancoHorasCalculo(
            id=uuid.uuid4(),
            calculo_id=calculo_id,
            empresa_id=empresa_id,
            mes=periodo.mes,
            ano=periodo.ano,
            versao=versao,
            modo=modo,
            valor_a_faturar=calculado.valor_a_faturar,
            taxa_hora_utilizada=calculado.taxa_hora_utilizada,
            percentual_repasse_mensal=calculado.percentual_repasse_mensal,
            is_fim_periodo=calculado.is_fim_periodo,
            observacao=calculado.observacao,
            created_by=autor,
        )
        for campo in CAMPOS_QUANTIDADE + ("valor_a_transportar",):
            calculo.definir_quantidade(campo, modo, getattr(calculado, campo))
        return calculo

    async def _persistir_reajuste(
        self,
        configuracao: ConfiguracaoEmpresa,
        periodo: Periodo,
        unidades: int,
        observacao: str,
        autor: str,
    ) -> BancoHorasReajuste:
        reajuste = BancoHorasReajuste(
            id=uuid.uuid4(),
            empresa_id=configuracao.empresa_id,
            mes=periodo.mes,
            ano=periodo.ano,
            tipo=(TipoReajuste.ENTRADA if unidades > 0 else TipoReajuste.SAIDA).value,
            observacao=observacao,
            created_by=autor,
            ativo=True,
        )
        reajuste.definir_quantidade("valor", configuracao.modo.value, unidades)
        self.db.add(reajuste)
        await self.db.flush()
        return reajuste

    # ===========================================
    # VALIDATION
    # ===========================================

    @staticmethod
    def _validar_motivo(motivo: Optional[str]) -> str:
        texto = (motivo or "").strip()
        minimo = settings.banco_horas_observacao_min_chars
        if len(texto) < minimo:
            raise ValidationException(
                message=f"Justification must have at least {minimo} characters",
                field="motivo",
                details={"min_length": minimo, "provided_length": len(texto)},
            )
        return texto

    @staticmethod
    def _validar_autor(autor: Optional[str]) -> str:
        texto = (autor or "").strip()
        if not texto:
            raise ValidationException(message="Author is required", field="autor")
        return texto

    @staticmethod
    def _validar_periodo(configuracao: ConfiguracaoEmpresa, periodo: Periodo) -> None:
        # Raises InvalidPeriodException for months before the contract start
        fim_da_vigencia(periodo, configuracao.inicio_vigencia, configuracao.periodo_apuracao)
