# schemas.py
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CodeStatus(str, Enum):
    AVAILABLE = "available"
    REDEEMED = "redeemed"
    USED = "used"
    # Display only, never stored
    EXPIRED = "expired"


class ActorKind(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"
    PROMOTER = "promoter"


class CampaignKind(str, Enum):
    PROMOTION = "promotion"
    EVENT = "event"


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything we write is UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# --------------------------------------------------------------------
# Identities
# --------------------------------------------------------------------

class Issuer(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ActorKind
    name: str
    id: str


class Claimant(BaseModel):
    model_config = ConfigDict(frozen=True)

    external_id: str
    name: str


class Admitter(BaseModel):
    model_config = ConfigDict(frozen=True)

    actor_id: str
    name: str


# --------------------------------------------------------------------
# Aggregate snapshot
# --------------------------------------------------------------------

class Code(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    value: str
    status: CodeStatus = CodeStatus.AVAILABLE
    issued_by: Issuer
    issued_at: datetime
    note: str | None = None

    claimed_at: datetime | None = None
    claimed_by: Claimant | None = None

    admitted_at: datetime | None = None
    admitted_by: Admitter | None = None

    vip: bool = False

    @field_validator("issued_at", "claimed_at", "admitted_at")
    @classmethod
    def normalize_times(cls, value):
        return _aware(value)


class TicketType(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    quantity: int | None = Field(default=None, ge=0)


class CampaignSnapshot(BaseModel):
    """Read-only view of one campaign row, codes included."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    business_id: str
    kind: CampaignKind = CampaignKind.PROMOTION
    name: str = ""
    start_at: datetime
    end_at: datetime
    active: bool = True
    capacity_limit: int | None = None
    ticket_types: list[TicketType] = []
    codes: list[Code] = []
    version: int = 0

    @field_validator("start_at", "end_at")
    @classmethod
    def normalize_times(cls, value):
        return _aware(value)


# --------------------------------------------------------------------
# Operation results
# --------------------------------------------------------------------

class DeleteResult(BaseModel):
    deleted: int
    retained: int
    missing: int = 0
    deleted_ids: list[str] = []


class UsageSummary(BaseModel):
    total: int
    available: int
    redeemed: int
    used: int
    capacity: int | None
    remaining: int | None


# --------------------------------------------------------------------
# HTTP payloads
# --------------------------------------------------------------------

class GenerateIn(BaseModel):
    count: int
    note: str | None = None
    issuer: Issuer


class ClaimIn(BaseModel):
    code: str
    claimant: Claimant
    vip: bool = False


class AdmitIn(BaseModel):
    admitter: Admitter
    vip: bool | None = None


class DeleteIn(BaseModel):
    code_ids: list[str]
    restrict_to_issuer: str | None = None


class CodeOut(BaseModel):
    code: Code
    display_status: CodeStatus


class CodeGroupOut(BaseModel):
    key: str
    is_batch: bool
    note: str | None
    issued_at: datetime
    issued_by_name: str
    values_text: str
    deletable_ids: list[str]
    codes: list[CodeOut]


class CampaignStatusOut(BaseModel):
    id: str
    kind: CampaignKind
    name: str
    active: bool
    activatable: bool
    usage: UsageSummary
