from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from campaign_rules import (
    UNLIMITED,
    capacity_limit,
    effective_status,
    is_activatable,
    remaining_capacity,
    usage_summary,
)
from schemas import CampaignSnapshot, CodeStatus, TicketType

from conftest import NOW, make_code


def snapshot(**overrides) -> CampaignSnapshot:
    fields = dict(
        id="camp-1",
        business_id="biz-1",
        start_at=NOW - timedelta(days=1),
        end_at=NOW + timedelta(days=1),
        active=True,
    )
    fields.update(overrides)
    return CampaignSnapshot(**fields)


# --------------------------------------------------------------------
# Capacity
# --------------------------------------------------------------------

def test_unset_capacity_is_unlimited():
    assert remaining_capacity(snapshot()) == UNLIMITED
    assert remaining_capacity(snapshot(capacity_limit=0)) == UNLIMITED


def test_remaining_capacity_counts_every_code_regardless_of_status():
    codes = [
        make_code("AAAAAAAA1"),
        make_code("AAAAAAAA2", status=CodeStatus.REDEEMED),
        make_code("AAAAAAAA3", status=CodeStatus.USED),
    ]
    assert remaining_capacity(snapshot(capacity_limit=5, codes=codes)) == 2


def test_remaining_capacity_never_goes_negative():
    codes = [make_code(f"AAAAAAAA{i}") for i in range(4)]
    assert remaining_capacity(snapshot(capacity_limit=2, codes=codes)) == 0


def test_capacity_from_ticket_quantities():
    tickets = [TicketType(name="General", quantity=80), TicketType(name="VIP", quantity=20)]
    assert capacity_limit(snapshot(ticket_types=tickets)) == 100


def test_open_ended_ticket_type_makes_capacity_unlimited():
    tickets = [TicketType(name="General", quantity=80), TicketType(name="Guest list")]
    assert capacity_limit(snapshot(ticket_types=tickets)) == 0


def test_explicit_capacity_wins_over_tickets():
    tickets = [TicketType(name="General", quantity=80)]
    assert capacity_limit(snapshot(capacity_limit=30, ticket_types=tickets)) == 30


# --------------------------------------------------------------------
# Activation window
# --------------------------------------------------------------------

def test_active_campaign_inside_window_is_activatable():
    assert is_activatable(snapshot(), NOW)


def test_switched_off_campaign_is_not_activatable():
    assert not is_activatable(snapshot(active=False), NOW)


def test_active_campaign_past_its_end_is_not_activatable():
    campaign = snapshot(start_at=NOW - timedelta(days=10), end_at=NOW - timedelta(days=2))
    assert campaign.active
    assert not is_activatable(campaign, NOW)


def test_window_covers_the_whole_first_and_last_day():
    morning = datetime(2026, 3, 15, 0, 0, tzinfo=timezone.utc)
    campaign = snapshot(start_at=morning + timedelta(hours=20), end_at=morning + timedelta(hours=21))
    assert is_activatable(campaign, datetime(2026, 3, 15, 0, 0, tzinfo=timezone.utc))
    assert is_activatable(campaign, datetime(2026, 3, 15, 23, 59, 59, tzinfo=timezone.utc))
    assert not is_activatable(campaign, datetime(2026, 3, 16, 0, 0, tzinfo=timezone.utc))
    assert not is_activatable(campaign, datetime(2026, 3, 14, 23, 59, 59, tzinfo=timezone.utc))


def test_day_bounds_follow_the_configured_zone():
    campaign = snapshot(
        start_at=datetime(2026, 3, 10, tzinfo=timezone.utc),
        end_at=datetime(2026, 3, 15, 0, 0, tzinfo=timezone.utc),
    )
    now = datetime(2026, 3, 15, 6, 0, tzinfo=timezone.utc)
    assert is_activatable(campaign, now)
    # In Lima the end date is still March 14th, which closed at 05:00 UTC
    assert not is_activatable(campaign, now, ZoneInfo("America/Lima"))


def test_naive_now_is_read_as_utc():
    assert is_activatable(snapshot(), NOW.replace(tzinfo=None))


# --------------------------------------------------------------------
# Displayed status
# --------------------------------------------------------------------

def test_available_codes_of_a_closed_campaign_display_as_expired():
    code = make_code("AAAAAAAA1")
    closed = snapshot(end_at=NOW - timedelta(days=3), start_at=NOW - timedelta(days=5))
    assert effective_status(code, closed, NOW) == CodeStatus.EXPIRED
    assert code.status == CodeStatus.AVAILABLE


def test_expiry_is_undone_when_dates_are_extended():
    code = make_code("AAAAAAAA1")
    closed = snapshot(end_at=NOW - timedelta(days=3), start_at=NOW - timedelta(days=5))
    reopened = closed.model_copy(update={"end_at": NOW + timedelta(days=3)})
    assert effective_status(code, reopened, NOW) == CodeStatus.AVAILABLE


def test_claimed_and_used_codes_keep_their_status_after_close():
    closed = snapshot(active=False)
    assert effective_status(make_code("A1", status=CodeStatus.REDEEMED), closed, NOW) == CodeStatus.REDEEMED
    assert effective_status(make_code("A2", status=CodeStatus.USED), closed, NOW) == CodeStatus.USED


def test_usage_summary():
    codes = [
        make_code("A1"),
        make_code("A2"),
        make_code("A3", status=CodeStatus.REDEEMED),
        make_code("A4", status=CodeStatus.USED),
    ]
    summary = usage_summary(snapshot(capacity_limit=10, codes=codes))
    assert (summary.total, summary.available, summary.redeemed, summary.used) == (4, 2, 1, 1)
    assert summary.capacity == 10
    assert summary.remaining == 6

    unlimited = usage_summary(snapshot(codes=codes))
    assert unlimited.capacity is None
    assert unlimited.remaining is None
