# store.py
import logging
from typing import Callable, TypeVar

from sqlalchemy.orm.exc import StaleDataError

from config import CODE_TX_MAX_ATTEMPTS
from errors import ContentionError, NotFoundError
from models import Campaign
from schemas import CampaignSnapshot, Code

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Receives the freshly read campaign, returns the full new code list (or None
# to leave it untouched) and whatever the caller should get back
Mutation = Callable[[CampaignSnapshot], tuple[list[Code] | None, T]]


class CampaignStore:
    """Reads and writes campaign aggregates.

    ``mutate`` is the only write path for codes. It re-reads the row on every
    attempt, so a transition is always validated against what is actually
    stored and never resubmits values built from an older read.
    """

    def __init__(self, session_factory, max_attempts: int = CODE_TX_MAX_ATTEMPTS):
        self.session_factory = session_factory
        self.max_attempts = max(1, max_attempts)

    def create_campaign(self, **fields) -> CampaignSnapshot:
        codes = fields.pop("codes", [])
        tickets = fields.pop("ticket_types", [])
        with self.session_factory() as db:
            row = Campaign(
                codes=[_dump(code) for code in codes],
                ticket_types=[_dump(ticket) for ticket in tickets],
                **fields,
            )
            db.add(row)
            db.commit()
            logger.info("Created campaign %s", row.id, extra={"business_id": row.business_id})
            return CampaignSnapshot.model_validate(row)

    def get(self, campaign_id: str) -> CampaignSnapshot:
        with self.session_factory() as db:
            return CampaignSnapshot.model_validate(self._load(db, campaign_id))

    def mutate(self, campaign_id: str, fn: Mutation, *, transition: str = "update") -> T:
        for attempt in range(1, self.max_attempts + 1):
            with self.session_factory() as db:
                row = self._load(db, campaign_id)
                new_codes, result = fn(CampaignSnapshot.model_validate(row))
                if new_codes is None:
                    return result

                row.codes = [_dump(code) for code in new_codes]
                try:
                    db.commit()
                except StaleDataError:
                    db.rollback()
                    logger.info(
                        "Campaign %s changed underneath %s (attempt %d of %d), re-reading",
                        campaign_id,
                        transition,
                        attempt,
                        self.max_attempts,
                        extra={"campaign_id": campaign_id, "transition": transition},
                    )
                    continue
                return result

        logger.warning(
            "Gave up on %s for campaign %s after %d attempts",
            transition,
            campaign_id,
            self.max_attempts,
            extra={"campaign_id": campaign_id, "transition": transition},
        )
        raise ContentionError(
            f"Campaign {campaign_id} kept changing during {transition}",
            campaign_id=campaign_id,
            transition=transition,
        )

    @staticmethod
    def _load(db, campaign_id: str) -> Campaign:
        row = db.get(Campaign, campaign_id)
        if row is None:
            raise NotFoundError(f"Campaign {campaign_id} does not exist", campaign_id=campaign_id)
        return row


def _dump(item) -> dict:
    if isinstance(item, dict):
        return item
    return item.model_dump(mode="json")
