"""Map source movements to ledger transactions.

Pure functions, no I/O. Every movement maps to exactly one transaction.
"""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from ..schemas import UNKNOWN_PAYEE, NormalizedTransaction, SourceMovement

_CENTS = Decimal(100)


def amount_to_minor_units(amount: Decimal, sign: str) -> int:
    """Convert an unsigned amount and its sign marker to signed cents.

    Rounds half away from zero; only a "-" marker makes the result negative.

    Examples:
        >>> amount_to_minor_units(Decimal("99.99"), "-")
        -9999
        >>> amount_to_minor_units(Decimal("0.005"), "+")
        1
    """
    cents = int((Decimal(amount) * _CENTS).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return -cents if sign == "-" else cents


def format_movement_date(value: str) -> str:
    """Reformat a compact YYYYMMDD date as YYYY-MM-DD.

    Any value that is not exactly 8 characters is returned unchanged, which
    makes the function idempotent.

    Examples:
        >>> format_movement_date("20260218")
        '2026-02-18'
        >>> format_movement_date("2026-02-18")
        '2026-02-18'
    """
    if len(value) == 8:
        return f"{value[:4]}-{value[4:6]}-{value[6:]}"
    return value


def build_notes(*parts: str) -> str:
    return " ".join(part for part in parts if part).strip()


class TransactionMapper:
    """Turn source movements into importable ledger transactions."""

    def map_movement(
        self, movement: SourceMovement, account_id: str
    ) -> NormalizedTransaction:
        """Map one movement onto the ledger account ``account_id``."""
        return NormalizedTransaction(
            account=account_id,
            date=format_movement_date(movement.accounting_date),
            amount=amount_to_minor_units(
                movement.movement_amount, movement.movement_sign
            ),
            payee_name=movement.counterparty_name or UNKNOWN_PAYEE,
            notes=build_notes(
                movement.communication_part1, movement.communication_part2
            ),
            imported_id=movement.identifier,
        )

    def map_movements(
        self, movements: Iterable[SourceMovement], account_id: str
    ) -> list[NormalizedTransaction]:
        """Map a batch of movements, preserving source order."""
        return [self.map_movement(m, account_id) for m in movements]


__all__ = [
    "TransactionMapper",
    "amount_to_minor_units",
    "format_movement_date",
    "build_notes",
]
