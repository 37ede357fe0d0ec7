"""
Banco de Horas - Quantity Arithmetic

Hours and tickets value types used by the ledger.

Hours are held as signed integer minutes and shown as [-]HH:MM.
Tickets are held as signed integers.

Every ledger field is kept in integer units (minutes or tickets) so sums and
differences are exact; conversion to Decimal only happens for monetary
multiplication.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Optional, Union

from app.utils.error_handling import (
    BillingModeMismatchException,
    InvalidQuantityException,
    ValidationException,
)


class BillingMode(str, Enum):
    """Billing mode of a company's hours bank."""
    HORAS = "horas"
    TICKETS = "tickets"


HORAS_PATTERN = re.compile(r"^([+-])?(\d+)(?::(\d{1,2}))?$")
TICKETS_PATTERN = re.compile(r"^[+-]?\d+$")

FORMATO_HORAS = "HH:MM, -HH:MM or whole hours"
FORMATO_TICKETS = "a whole number of tickets"


def arredondar(valor: Decimal) -> int:
    """Round a Decimal to the nearest integer unit, halves away from zero."""
    return int(valor.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ===========================================
# VALUE TYPES
# ===========================================

@dataclass(frozen=True, order=True)
class Horas:
    """Signed duration in whole minutes."""

    minutos: int = 0

    @classmethod
    def parse(cls, valor: Any, campo: Optional[str] = None) -> "Horas":
        """
        Parse an hours value.

        Accepts "HH:MM", "-HH:MM", "+HH:MM", bare whole hours ("10" is 10:00)
        and Horas instances. Minutes must be below 60.
        """
        if isinstance(valor, Horas):
            return valor
        if isinstance(valor, (Tickets, int)) and not isinstance(valor, bool):
            raise BillingModeMismatchException(BillingMode.HORAS.value, valor, field=campo)
        if not isinstance(valor, str):
            raise InvalidQuantityException(valor, FORMATO_HORAS, field=campo)

        match = HORAS_PATTERN.match(valor.strip())
        if not match:
            raise InvalidQuantityException(valor, FORMATO_HORAS, field=campo)

        sinal, horas, minutos = match.groups()
        minutos = int(minutos) if minutos is not None else 0
        if minutos >= 60:
            raise InvalidQuantityException(
                valor,
                FORMATO_HORAS,
                field=campo,
                message=f"Invalid quantity: {valor!r}. Minutes must be less than 60.",
            )

        total = int(horas) * 60 + minutos
        return cls(-total if sinal == "-" else total)

    @classmethod
    def de_decimal(cls, horas: Decimal) -> "Horas":
        """Build from a decimal number of hours, rounded to the whole minute."""
        return cls(arredondar(Decimal(horas) * 60))

    def formatar(self) -> str:
        if self.minutos == 0:
            return "00:00"
        sinal = "-" if self.minutos < 0 else ""
        horas, minutos = divmod(abs(self.minutos), 60)
        return f"{sinal}{horas:02d}:{minutos:02d}"

    def para_decimal(self) -> Decimal:
        """Decimal number of hours (90 minutes -> 1.5)."""
        return Decimal(self.minutos) / Decimal(60)

    def __add__(self, other: "Horas") -> "Horas":
        if not isinstance(other, Horas):
            return NotImplemented
        return Horas(self.minutos + other.minutos)

    def __sub__(self, other: "Horas") -> "Horas":
        if not isinstance(other, Horas):
            return NotImplemented
        return Horas(self.minutos - other.minutos)

    def __neg__(self) -> "Horas":
        return Horas(-self.minutos)

    def __str__(self) -> str:
        return self.formatar()


@dataclass(frozen=True, order=True)
class Tickets:
    """Signed whole number of tickets."""

    quantidade: int = 0

    @classmethod
    def parse(cls, valor: Any, campo: Optional[str] = None) -> "Tickets":
        """
        Parse a tickets value.

        Accepts ints, integral Decimals and integer strings. Booleans,
        fractional numbers and HH:MM strings are rejected.
        """
        if isinstance(valor, Tickets):
            return valor
        if isinstance(valor, Horas):
            raise BillingModeMismatchException(BillingMode.TICKETS.value, valor, field=campo)
        if isinstance(valor, bool):
            raise InvalidQuantityException(valor, FORMATO_TICKETS, field=campo)
        if isinstance(valor, int):
            return cls(valor)
        if isinstance(valor, (Decimal, float)):
            numero = Decimal(valor)
            if not numero.is_finite() or numero != numero.to_integral_value():
                raise InvalidQuantityException(valor, FORMATO_TICKETS, field=campo)
            return cls(int(numero))
        if isinstance(valor, str):
            texto = valor.strip()
            if ":" in texto:
                raise BillingModeMismatchException(BillingMode.TICKETS.value, valor, field=campo)
            if TICKETS_PATTERN.match(texto):
                return cls(int(texto))
        raise InvalidQuantityException(valor, FORMATO_TICKETS, field=campo)

    def formatar(self) -> str:
        return str(self.quantidade)

    def para_decimal(self) -> Decimal:
        return Decimal(self.quantidade)

    def __add__(self, other: "Tickets") -> "Tickets":
        if not isinstance(other, Tickets):
            return NotImplemented
        return Tickets(self.quantidade + other.quantidade)

    def __sub__(self, other: "Tickets") -> "Tickets":
        if not isinstance(other, Tickets):
            return NotImplemented
        return Tickets(self.quantidade - other.quantidade)

    def __neg__(self) -> "Tickets":
        return Tickets(-self.quantidade)

    def __str__(self) -> str:
        return self.formatar()


Quantidade = Union[Horas, Tickets]


def horas_decimal_para_tickets(horas: Union[Decimal, int, str]) -> int:
    """Convert a decimal hour amount to tickets (1 hour = 1 ticket)."""
    return arredondar(Decimal(horas))


# ===========================================
# ARITHMETIC STRATEGIES
# ===========================================

class AritmeticaHoras:
    """Ledger arithmetic for companies billed by hours. Units are minutes."""

    modo = BillingMode.HORAS
    sufixo_coluna = "horas"
    descricao_unidade = "horas"

    def parse(self, valor: Any, campo: Optional[str] = None) -> int:
        return Horas.parse(valor, campo).minutos

    def formatar(self, unidades: int) -> str:
        return Horas(unidades).formatar()

    def quantidade(self, unidades: int) -> Horas:
        return Horas(unidades)

    def para_decimal(self, unidades: int) -> Decimal:
        return Horas(unidades).para_decimal()

    def aplicar_percentual(self, unidades: int, percentual: Decimal) -> int:
        return arredondar(Decimal(unidades) * Decimal(percentual) / Decimal(100))


class AritmeticaTickets:
    """Ledger arithmetic for companies billed by tickets. Units are tickets."""

    modo = BillingMode.TICKETS
    sufixo_coluna = "tickets"
    descricao_unidade = "tickets"

    def parse(self, valor: Any, campo: Optional[str] = None) -> int:
        return Tickets.parse(valor, campo).quantidade

    def formatar(self, unidades: int) -> str:
        return Tickets(unidades).formatar()

    def quantidade(self, unidades: int) -> Tickets:
        return Tickets(unidades)

    def para_decimal(self, unidades: int) -> Decimal:
        return Tickets(unidades).para_decimal()

    def aplicar_percentual(self, unidades: int, percentual: Decimal) -> int:
        return arredondar(Decimal(unidades) * Decimal(percentual) / Decimal(100))


_ARITMETICAS = {
    BillingMode.HORAS: AritmeticaHoras(),
    BillingMode.TICKETS: AritmeticaTickets(),
}


def aritmetica_para(modo: Union[BillingMode, str]):
    """Return the arithmetic strategy for a billing mode."""
    try:
        return _ARITMETICAS[BillingMode(modo)]
    except ValueError:
        raise ValidationException(
            message=f"Unknown billing mode: {modo!r}",
            field="modo_cobranca",
            details={"allowed": [m.value for m in BillingMode]},
        )
