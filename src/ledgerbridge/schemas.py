"""Pydantic schemas for source payloads, ledger transactions and sync results.

Source payloads arrive as camelCase JSON from the homebanking API; the models
accept both the wire names and the snake_case field names.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .errors import SyncFailure

UNKNOWN_PAYEE = "Unknown"


class SourceSchema(BaseModel):
    """Base schema for payloads read from the source API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class SourceAccount(SourceSchema):
    """Account as listed by the source after login."""

    id: str = Field(default="", description="Source account identifier")
    iban: str = Field(default="", description="Account number (IBAN)")
    alias: str = Field(default=UNKNOWN_PAYEE, description="Display name")

    @field_validator("id", "iban", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        """Treat missing identifiers as empty strings."""
        return "" if v is None else v

    @field_validator("alias", mode="before")
    @classmethod
    def default_alias(cls, v: Any) -> Any:
        """Fall back to a placeholder label for unnamed accounts."""
        return v or UNKNOWN_PAYEE


class SourceMovement(SourceSchema):
    """One accounting movement as returned by the source, newest first."""

    identifier: str = Field(..., description="Source-unique movement identifier")
    accounting_date: str = Field(..., description="Posting date, usually YYYYMMDD")
    movement_amount: Decimal = Field(..., description="Unsigned movement amount")
    movement_sign: str = Field(default="", description="'-' for debits")
    counterparty_name: str = Field(default="", description="Counterparty name")
    communication_part1: str = Field(default="", description="Free-text line 1")
    communication_part2: str = Field(default="", description="Free-text line 2")
    value_date: str = Field(default="", description="Value date")

    # Passthrough fields, kept for snapshots only
    account_number: str = ""
    counter_party_account_number: str = ""
    is_rejectable: bool = False
    operation_counterparty: str = ""
    operation_date: str = ""
    operation_reference: str = ""
    order_amount: Decimal | None = None
    pisp_participant_name: str = ""
    rejection_identifier: str = ""
    standard_wording: str = ""
    structured_communication_switch: str = ""

    @field_validator("movement_amount", "order_amount", mode="before")
    @classmethod
    def validate_amount(cls, v: Any) -> Any:
        """Convert amounts to Decimal for precision."""
        if v is None or isinstance(v, Decimal):
            return v
        if isinstance(v, (int, float, str)):
            return Decimal(str(v))
        raise ValueError(f"Cannot convert {type(v)} to Decimal")

    @field_validator(
        "movement_sign",
        "counterparty_name",
        "communication_part1",
        "communication_part2",
        "value_date",
        "account_number",
        "counter_party_account_number",
        "operation_counterparty",
        "operation_date",
        "operation_reference",
        "pisp_participant_name",
        "rejection_identifier",
        "standard_wording",
        "structured_communication_switch",
        mode="before",
    )
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        """The source sends null for blank text fields."""
        return "" if v is None else v


class MovementPage(BaseModel):
    """One page of movements plus the source's total row count."""

    movements: list[SourceMovement] = Field(default_factory=list)
    total_count: int = Field(default=0, ge=0)


class NormalizedTransaction(BaseModel):
    """Transaction in the shape the ledger imports."""

    model_config = ConfigDict(frozen=True)

    account: str = Field(..., description="Destination ledger account id")
    date: str = Field(..., description="ISO date, YYYY-MM-DD")
    amount: int = Field(..., description="Minor units, negative for debits")
    payee_name: str = Field(..., min_length=1)
    notes: str = ""
    imported_id: str = Field(..., description="Source identifier, dedup key")


class LedgerAccount(BaseModel):
    """Account that exists in the ledger."""

    id: str
    name: str


class ImportResult(BaseModel):
    """Outcome of one ledger batch import."""

    success: bool
    added: int = 0
    updated: int = 0
    errors: list[str] = Field(default_factory=list)
    message: str = ""


class Account(BaseModel):
    """Linked source account with its sync checkpoint."""

    id: str
    iban: str
    alias: str
    last_sync_time: datetime | None = None
    ledger_account_id: str | None = None
    last_synced_row_count: int = Field(default=0, ge=0)

    @property
    def is_linked(self) -> bool:
        return bool(self.ledger_account_id)


class SyncResult(BaseModel):
    """Outcome of one sync run, returned instead of raising."""

    success: bool
    message: str
    movement_count: int | None = None
    import_result: ImportResult | None = None
    needs_account_link: bool = False
    needs_reauth: bool = False
    failure: SyncFailure | None = None


class LoginResult(BaseModel):
    """Outcome of an interactive login."""

    success: bool
    accounts: list[SourceAccount] = Field(default_factory=list)
    error: str | None = None
    failure: SyncFailure | None = None


class SyncState(BaseModel):
    """Read-only view of the orchestrator's single-flight flag."""

    model_config = ConfigDict(frozen=True)

    in_progress: bool


class AccountStatus(Account):
    """Account row enriched with live counts from the source."""

    source_movement_count: int | None = None
    pending_count: int | None = None


class SyncStatus(BaseModel):
    """Overall login and per-account sync state."""

    last_login_time: datetime | None = None
    last_login_success: bool | None = None
    last_error: str | None = None
    session_valid: bool = False
    in_progress: bool = False
    accounts: list[AccountStatus] = Field(default_factory=list)


__all__ = [
    "UNKNOWN_PAYEE",
    "SourceAccount",
    "SourceMovement",
    "MovementPage",
    "NormalizedTransaction",
    "LedgerAccount",
    "ImportResult",
    "Account",
    "SyncResult",
    "LoginResult",
    "SyncState",
    "AccountStatus",
    "SyncStatus",
]
