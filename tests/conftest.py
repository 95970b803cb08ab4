"""Fixtures compartilhadas: banco SQLite em memória, relógio controlado e gateway falso."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from pixpay.db.models import Group, Profile
from pixpay.db.session import build_engine, create_all_tables, get_session
from pixpay.payments.collaborators import SqlListingDirectory, SqlProfileDirectory
from pixpay.payments.gateway.base import ChargeStatus, CreateChargeRequest, CreateChargeResult
from pixpay.payments.store import PaymentStore

T0 = datetime(2025, 1, 10, 12, 0, 0, tzinfo=timezone.utc)
PNG_DATA_URL = "data:image/png;base64,iVBORw0KGgo="


class FrozenClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeGateway:
    """Gateway em memória: registra chamadas, devolve resultado fixo ou levanta erro."""

    name = "fake"

    def __init__(self, error: Optional[Exception] = None, qr_code_image: Optional[str] = PNG_DATA_URL):
        self.error = error
        self.qr_code_image = qr_code_image
        self.requests: list[CreateChargeRequest] = []
        self.status_calls: list[str] = []
        self.counter = 0

    def create_charge(self, request: CreateChargeRequest) -> CreateChargeResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        self.counter += 1
        return CreateChargeResult(
            charge_id=f"tx-{self.counter}",
            pix_code=f"00020126pix-{self.counter}",
            qr_code_image=self.qr_code_image,
            amount_cents=request.amount_cents,
        )

    def get_status(self, external_id: str) -> ChargeStatus:
        self.status_calls.append(external_id)
        return ChargeStatus(status="pending", charge_id=external_id)


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    create_all_tables(engine)
    with get_session(engine) as session:
        session.add(Group(id="g1", title="Grupo de Ofertas"))
        session.add(Group(id="g2", title="Grupo de Vagas"))
        session.add(Profile(id="u1", email="fulano@example.com", full_name="Fulano"))
        session.add(Profile(id="u2", email="ciclano@example.com", full_name="Ciclano"))
        session.add(Profile(id="admin", email="admin@example.com", full_name="Admin", is_admin=True))
        session.commit()
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine) -> PaymentStore:
    return PaymentStore(engine)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def profiles(engine) -> SqlProfileDirectory:
    return SqlProfileDirectory(engine)


@pytest.fixture
def listings(engine) -> SqlListingDirectory:
    return SqlListingDirectory(engine)
