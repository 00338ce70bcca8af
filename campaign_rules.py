# campaign_rules.py
"""Pure predicates over a campaign snapshot: capacity, activation window and
the displayed (derived) status of a code. Nothing here touches storage."""
from datetime import datetime, time, timezone, tzinfo
import sys
from zoneinfo import ZoneInfo

from config import CAMPAIGN_TIMEZONE
from schemas import CampaignSnapshot, Code, CodeStatus, UsageSummary

UNLIMITED = sys.maxsize

DEFAULT_TZ = ZoneInfo(CAMPAIGN_TIMEZONE)


def capacity_limit(campaign: CampaignSnapshot) -> int:
    """Effective ceiling on the number of codes; 0 means unlimited.

    An explicit ``capacity_limit`` wins. Otherwise an event whose ticket types
    all declare a quantity is capped at their sum. A single open-ended ticket
    type leaves the campaign unlimited.
    """
    if campaign.capacity_limit:
        return max(0, campaign.capacity_limit)

    tickets = campaign.ticket_types
    if tickets and all(t.quantity is not None for t in tickets):
        return sum(t.quantity for t in tickets)
    return 0


def remaining_capacity(campaign: CampaignSnapshot) -> int:
    limit = capacity_limit(campaign)
    if limit == 0:
        return UNLIMITED
    return max(0, limit - len(campaign.codes))


def is_unlimited(campaign: CampaignSnapshot) -> bool:
    return capacity_limit(campaign) == 0


def _day_bounds(campaign: CampaignSnapshot, tz: tzinfo) -> tuple[datetime, datetime]:
    start_day = campaign.start_at.astimezone(tz).date()
    end_day = campaign.end_at.astimezone(tz).date()
    return (
        datetime.combine(start_day, time.min, tzinfo=tz),
        datetime.combine(end_day, time.max, tzinfo=tz),
    )


def is_within_window(campaign: CampaignSnapshot, now: datetime, tz: tzinfo = DEFAULT_TZ) -> bool:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    start, end = _day_bounds(campaign, tz)
    return start <= now <= end


def is_activatable(campaign: CampaignSnapshot, now: datetime, tz: tzinfo = DEFAULT_TZ) -> bool:
    """True when the campaign is switched on and ``now`` falls between the
    start of its first day and the end of its last day."""
    return campaign.active and is_within_window(campaign, now, tz)


def effective_status(
    code: Code, campaign: CampaignSnapshot, now: datetime, tz: tzinfo = DEFAULT_TZ
) -> CodeStatus:
    # Unused codes of a campaign that can no longer be activated read as
    # expired. The stored status is left alone so re-opening the dates
    # brings them back.
    if code.status == CodeStatus.AVAILABLE and not is_activatable(campaign, now, tz):
        return CodeStatus.EXPIRED
    return code.status


def usage_summary(campaign: CampaignSnapshot) -> UsageSummary:
    counts = {status: 0 for status in (CodeStatus.AVAILABLE, CodeStatus.REDEEMED, CodeStatus.USED)}
    for code in campaign.codes:
        counts[code.status] = counts.get(code.status, 0) + 1

    limit = capacity_limit(campaign)
    return UsageSummary(
        total=len(campaign.codes),
        available=counts[CodeStatus.AVAILABLE],
        redeemed=counts[CodeStatus.REDEEMED],
        used=counts[CodeStatus.USED],
        capacity=limit or None,
        remaining=remaining_capacity(campaign) if limit else None,
    )
