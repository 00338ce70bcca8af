# service.py
"""The four operations the rest of the application calls, plus read helpers.

Every write goes through ``CampaignStore.mutate`` so it is validated against
the campaign as stored at commit time.
"""
from datetime import datetime, timezone
import logging
import secrets
from typing import Callable

from batches import CodeGroup
from campaign_rules import effective_status, remaining_capacity, usage_summary
from code_generator import Chooser, build_batch, unique_values
from config import MAX_CODES_PER_BATCH
from errors import GenerationExhaustedError, InvalidCountError
import lifecycle
from schemas import (
    Admitter,
    CampaignSnapshot,
    Claimant,
    Code,
    CodeStatus,
    DeleteResult,
    Issuer,
    UsageSummary,
)
from store import CampaignStore

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CodeService:
    def __init__(
        self,
        store: CampaignStore,
        clock: Callable[[], datetime] = utcnow,
        choice: Chooser = secrets.choice,
    ):
        self.store = store
        self.clock = clock
        self.choice = choice

    # ----------------------------------------------------------------
    # Reads
    # ----------------------------------------------------------------

    def get_campaign(self, campaign_id: str) -> CampaignSnapshot:
        return self.store.get(campaign_id)

    def remaining_capacity(self, campaign_id: str) -> int:
        return remaining_capacity(self.store.get(campaign_id))

    def usage(self, campaign_id: str) -> UsageSummary:
        return usage_summary(self.store.get(campaign_id))

    def list_codes(
        self, campaign_id: str, issued_by_id: str | None = None
    ) -> list[tuple[Code, CodeStatus]]:
        campaign = self.store.get(campaign_id)
        now = self.clock()
        return [
            (code, effective_status(code, campaign, now))
            for code in campaign.codes
            if issued_by_id is None or code.issued_by.id == issued_by_id
        ]

    # ----------------------------------------------------------------
    # Writes
    # ----------------------------------------------------------------

    def generate_codes(
        self,
        campaign_id: str,
        count: int,
        note: str | None,
        issuer: Issuer,
    ) -> list[Code]:
        if count < 1 or count > MAX_CODES_PER_BATCH:
            raise InvalidCountError(
                f"Between 1 and {MAX_CODES_PER_BATCH} codes can be generated at once, got {count}",
                campaign_id=campaign_id,
                transition="generate",
            )

        def apply(campaign: CampaignSnapshot):
            now = self.clock()
            lifecycle.require_activatable(campaign, now, "generate")
            lifecycle.require_capacity(campaign, count)

            try:
                values = unique_values(count, (c.value for c in campaign.codes), choice=self.choice)
            except GenerationExhaustedError as exc:
                exc.campaign_id = campaign.id
                raise
            new_codes = build_batch(values, issuer=issuer, issued_at=now, note=note)
            return lifecycle.append_codes(campaign, new_codes), new_codes

        new_codes = self.store.mutate(campaign_id, apply, transition="generate")
        logger.info(
            "Generated %d codes for campaign %s",
            len(new_codes),
            campaign_id,
            extra={"campaign_id": campaign_id, "issuer_id": issuer.id, "note": note},
        )
        return new_codes

    def claim_code(
        self,
        campaign_id: str,
        code_value: str,
        claimant: Claimant,
        vip: bool = False,
    ) -> Code:
        def apply(campaign: CampaignSnapshot):
            return lifecycle.claim(campaign, code_value, claimant, self.clock(), vip=vip)

        code = self.store.mutate(campaign_id, apply, transition="claim")
        logger.info(
            "Code %s claimed in campaign %s",
            code.value,
            campaign_id,
            extra={"campaign_id": campaign_id, "code_id": code.id, "claimant": claimant.external_id},
        )
        return code

    def admit_code(
        self,
        campaign_id: str,
        code_id: str,
        admitter: Admitter,
        vip: bool | None = None,
    ) -> Code:
        def apply(campaign: CampaignSnapshot):
            return lifecycle.admit(campaign, code_id, admitter, self.clock(), vip=vip)

        code = self.store.mutate(campaign_id, apply, transition="admit")
        logger.info(
            "Code %s admitted in campaign %s",
            code.value,
            campaign_id,
            extra={"campaign_id": campaign_id, "code_id": code.id, "admitter": admitter.actor_id},
        )
        return code

    def delete_code(self, campaign_id: str, code_id: str) -> Code:
        removed = self.store.mutate(
            campaign_id,
            lambda campaign: lifecycle.remove_one(campaign, code_id),
            transition="delete",
        )
        logger.info("Deleted code %s from campaign %s", removed.value, campaign_id)
        return removed

    def delete_codes(
        self,
        campaign_id: str,
        code_ids: list[str],
        restrict_to_issuer: str | None = None,
    ) -> DeleteResult:
        def apply(campaign: CampaignSnapshot):
            codes, result = lifecycle.remove_available(campaign, code_ids, restrict_to_issuer)
            if result.deleted == 0:
                return None, result
            return codes, result

        result = self.store.mutate(campaign_id, apply, transition="delete")
        logger.info(
            "Deleted %d codes from campaign %s, %d retained",
            result.deleted,
            campaign_id,
            result.retained,
            extra={"campaign_id": campaign_id, "missing": result.missing},
        )
        return result

    def delete_batch(self, campaign_id: str, group: CodeGroup, restrict_to_issuer: str | None = None) -> DeleteResult:
        return self.delete_codes(campaign_id, [code.id for code in group.codes], restrict_to_issuer)
