from datetime import datetime, timedelta, timezone

import pytest

from db import make_engine, make_session_factory
from models import Base
from schemas import Admitter, ActorKind, Claimant, Code, CodeStatus, Issuer
from service import CodeService
from store import CampaignStore

NOW = datetime(2026, 3, 15, 18, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def session_factory(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'codes.db'}")
    Base.metadata.create_all(bind=engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return CampaignStore(session_factory)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def service(store, clock):
    return CodeService(store, clock=clock)


@pytest.fixture
def make_campaign(store):
    def _make(**overrides):
        fields = dict(
            business_id="biz-1",
            kind="event",
            name="Karaoke night",
            start_at=NOW - timedelta(days=1),
            end_at=NOW + timedelta(days=1),
            active=True,
        )
        fields.update(overrides)
        return store.create_campaign(**fields)

    return _make


@pytest.fixture
def campaign(make_campaign):
    return make_campaign()


@pytest.fixture
def issuer():
    return Issuer(kind=ActorKind.PROMOTER, name="Rosa", id="promoter-1")


@pytest.fixture
def claimant():
    return Claimant(external_id="dni-40111222", name="Ana Perez")


@pytest.fixture
def admitter():
    return Admitter(actor_id="staff-7", name="Door Staff")


def make_code(
    value: str,
    *,
    status: CodeStatus = CodeStatus.AVAILABLE,
    issued_at: datetime = NOW,
    issuer_name: str = "Rosa",
    issuer_id: str = "promoter-1",
    note: str | None = None,
    code_id: str | None = None,
) -> Code:
    fields = {}
    if status != CodeStatus.AVAILABLE:
        fields["claimed_at"] = issued_at
        fields["claimed_by"] = Claimant(external_id="dni-1", name="Someone")
    if status == CodeStatus.USED:
        fields["admitted_at"] = issued_at
        fields["admitted_by"] = Admitter(actor_id="staff-1", name="Staff")
    return Code(
        id=code_id or f"id-{value}",
        value=value,
        status=status,
        issued_by=Issuer(kind=ActorKind.PROMOTER, name=issuer_name, id=issuer_id),
        issued_at=issued_at,
        note=note,
        **fields,
    )
