"""
Banco de Horas - Periods and Apportionment Windows

A period is one calendar month of a company's ledger. Periods are grouped into
apportionment windows ("vigência") of `periodo_apuracao` months counted from
the company's `inicio_vigencia`. Overage is only billed on the last month of
a window.
"""

from dataclasses import dataclass
from datetime import date
from typing import List

from app.utils.error_handling import InvalidPeriodException, ValidationException


@dataclass(frozen=True, order=True)
class Periodo:
    """A ledger month. Orders chronologically."""

    ano: int
    mes: int

    def __post_init__(self):
        if not isinstance(self.mes, int) or not 1 <= self.mes <= 12:
            raise InvalidPeriodException(self.mes, self.ano)
        if not isinstance(self.ano, int) or self.ano < 1:
            raise InvalidPeriodException(self.mes, self.ano, message=f"Invalid year: {self.ano}")

    @classmethod
    def de_data(cls, data: date) -> "Periodo":
        return cls(ano=data.year, mes=data.month)

    @classmethod
    def de_indice(cls, indice: int) -> "Periodo":
        ano, mes = divmod(indice, 12)
        return cls(ano=ano, mes=mes + 1)

    @property
    def indice(self) -> int:
        """Months since year 0, used for period arithmetic."""
        return self.ano * 12 + self.mes - 1

    @property
    def primeiro_dia(self) -> date:
        return date(self.ano, self.mes, 1)

    def somar_meses(self, meses: int) -> "Periodo":
        return Periodo.de_indice(self.indice + meses)

    def proximo(self) -> "Periodo":
        return self.somar_meses(1)

    def anterior(self) -> "Periodo":
        return self.somar_meses(-1)

    def meses_ate(self, outro: "Periodo") -> int:
        return outro.indice - self.indice

    def __str__(self) -> str:
        return f"{self.mes:02d}/{self.ano}"


def validar_periodo_apuracao(periodo_apuracao: int) -> int:
    if not isinstance(periodo_apuracao, int) or isinstance(periodo_apuracao, bool) or not 1 <= periodo_apuracao <= 12:
        raise ValidationException(
            message=f"periodo_apuracao must be between 1 and 12 months, got {periodo_apuracao!r}",
            field="periodo_apuracao",
        )
    return periodo_apuracao


def meses_passados(periodo: Periodo, inicio_vigencia: date) -> int:
    """
    Ordinal of the period counted from the start month (start month is 1).

    Zero or negative for periods before the start.
    """
    return Periodo.de_data(inicio_vigencia).meses_ate(periodo) + 1


def is_fim_periodo(periodo: Periodo, inicio_vigencia: date, periodo_apuracao: int) -> bool:
    """True when the period closes an apportionment window."""
    validar_periodo_apuracao(periodo_apuracao)
    passados = meses_passados(periodo, inicio_vigencia)
    return passados > 0 and passados % periodo_apuracao == 0


def _exigir_vigente(periodo: Periodo, inicio_vigencia: date) -> int:
    passados = meses_passados(periodo, inicio_vigencia)
    if passados <= 0:
        raise InvalidPeriodException(
            periodo.mes,
            periodo.ano,
            message=f"Period {periodo} is before the contract start {Periodo.de_data(inicio_vigencia)}",
        )
    return passados


def inicio_da_vigencia(periodo: Periodo, inicio_vigencia: date, periodo_apuracao: int) -> Periodo:
    """First month of the window containing the period."""
    validar_periodo_apuracao(periodo_apuracao)
    passados = _exigir_vigente(periodo, inicio_vigencia)
    return periodo.somar_meses(-((passados - 1) % periodo_apuracao))


def fim_da_vigencia(periodo: Periodo, inicio_vigencia: date, periodo_apuracao: int) -> Periodo:
    """Last month of the window containing the period."""
    inicio = inicio_da_vigencia(periodo, inicio_vigencia, periodo_apuracao)
    return inicio.somar_meses(periodo_apuracao - 1)


def meses_da_vigencia(periodo: Periodo, inicio_vigencia: date, periodo_apuracao: int) -> List[Periodo]:
    """Every month of the window containing the period, in order."""
    inicio = inicio_da_vigencia(periodo, inicio_vigencia, periodo_apuracao)
    return [inicio.somar_meses(i) for i in range(periodo_apuracao)]


def intervalo(inicio: Periodo, fim: Periodo) -> List[Periodo]:
    """Inclusive list of periods from inicio to fim."""
    return [inicio.somar_meses(i) for i in range(inicio.meses_ate(fim) + 1)]
