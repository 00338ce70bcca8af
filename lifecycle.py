# lifecycle.py
"""State transitions of a single code.

    available --claim--> redeemed --admit--> used

Each function takes the campaign snapshot read inside the current
transaction, checks the precondition against it and returns the complete new
code list to write back together with the touched code(s). They never write
anything themselves and never move a code backwards.
"""
from datetime import datetime
from typing import Iterable

from campaign_rules import is_activatable, remaining_capacity
from code_generator import normalize_value
from errors import (
    CapacityExceededError,
    InactiveCampaignError,
    InvalidStateError,
    NotFoundError,
)
from schemas import Admitter, CampaignSnapshot, Claimant, Code, CodeStatus, DeleteResult


def find_code(campaign: CampaignSnapshot, ref: str) -> int:
    """Index of the code whose id or (normalized) value equals ``ref``."""
    for index, code in enumerate(campaign.codes):
        if code.id == ref:
            return index

    value = normalize_value(ref)
    for index, code in enumerate(campaign.codes):
        if code.value == value:
            return index

    raise NotFoundError(
        f"Code {ref!r} does not exist in campaign {campaign.id}",
        campaign_id=campaign.id,
        code_ref=ref,
    )


def require_activatable(campaign: CampaignSnapshot, now: datetime, transition: str, code_ref: str | None = None):
    if is_activatable(campaign, now):
        return
    if campaign.active:
        message = f"Campaign {campaign.id} is outside its valid dates"
    else:
        message = f"Campaign {campaign.id} is not active"
    raise InactiveCampaignError(
        message,
        active=campaign.active,
        campaign_id=campaign.id,
        code_ref=code_ref,
        transition=transition,
    )


def _replace(codes: list[Code], index: int, code: Code) -> list[Code]:
    updated = list(codes)
    updated[index] = code
    return updated


def require_capacity(campaign: CampaignSnapshot, count: int):
    remaining = remaining_capacity(campaign)
    if count > remaining:
        raise CapacityExceededError(
            f"Campaign {campaign.id} has room for {remaining} more codes, {count} requested",
            requested=count,
            remaining=remaining,
            campaign_id=campaign.id,
            transition="generate",
        )


def append_codes(campaign: CampaignSnapshot, new_codes: list[Code]) -> list[Code]:
    require_capacity(campaign, len(new_codes))
    return list(campaign.codes) + list(new_codes)


def claim(
    campaign: CampaignSnapshot,
    ref: str,
    claimant: Claimant,
    now: datetime,
    vip: bool = False,
) -> tuple[list[Code], Code]:
    require_activatable(campaign, now, "claim", ref)

    index = find_code(campaign, ref)
    code = campaign.codes[index]
    if code.status != CodeStatus.AVAILABLE:
        raise InvalidStateError(
            f"Code {code.value} is {code.status.value}, it can no longer be claimed",
            current_status=code.status.value,
            campaign_id=campaign.id,
            code_ref=ref,
            transition="claim",
        )

    claimed = code.model_copy(
        update={
            "status": CodeStatus.REDEEMED,
            "claimed_at": now,
            "claimed_by": claimant,
            "vip": vip,
        }
    )
    return _replace(campaign.codes, index, claimed), claimed


def admit(
    campaign: CampaignSnapshot,
    ref: str,
    admitter: Admitter,
    now: datetime,
    vip: bool | None = None,
) -> tuple[list[Code], Code]:
    index = find_code(campaign, ref)
    code = campaign.codes[index]
    if code.status != CodeStatus.REDEEMED:
        if code.status == CodeStatus.AVAILABLE:
            message = f"Code {code.value} has not been claimed yet"
        else:
            message = f"Code {code.value} was already admitted"
        raise InvalidStateError(
            message,
            current_status=code.status.value,
            campaign_id=campaign.id,
            code_ref=ref,
            transition="admit",
        )

    update = {
        "status": CodeStatus.USED,
        "admitted_at": now,
        "admitted_by": admitter,
    }
    if vip is not None:
        update["vip"] = vip
    admitted = code.model_copy(update=update)
    return _replace(campaign.codes, index, admitted), admitted


def remove_one(campaign: CampaignSnapshot, ref: str) -> tuple[list[Code], Code]:
    index = find_code(campaign, ref)
    code = campaign.codes[index]
    if code.status != CodeStatus.AVAILABLE:
        raise InvalidStateError(
            f"Code {code.value} is {code.status.value} and cannot be deleted",
            current_status=code.status.value,
            campaign_id=campaign.id,
            code_ref=ref,
            transition="delete",
        )
    return campaign.codes[:index] + campaign.codes[index + 1:], code


def remove_available(
    campaign: CampaignSnapshot,
    code_ids: Iterable[str],
    restrict_to_issuer: str | None = None,
) -> tuple[list[Code], DeleteResult]:
    """Drop the requested codes that are still available.

    Codes already claimed or admitted, and, when ``restrict_to_issuer`` is
    given, codes issued by someone else, stay where they are and are
    counted as retained. Ids that are not on the campaign count as missing.
    """
    wanted = set(code_ids)
    present = {code.id for code in campaign.codes}

    kept: list[Code] = []
    deleted_ids: list[str] = []
    retained = 0
    for code in campaign.codes:
        if code.id not in wanted:
            kept.append(code)
            continue
        eligible = code.status == CodeStatus.AVAILABLE and (
            restrict_to_issuer is None or code.issued_by.id == restrict_to_issuer
        )
        if eligible:
            deleted_ids.append(code.id)
        else:
            kept.append(code)
            retained += 1

    result = DeleteResult(
        deleted=len(deleted_ids),
        retained=retained,
        missing=len(wanted - present),
        deleted_ids=deleted_ids,
    )
    return kept, result
