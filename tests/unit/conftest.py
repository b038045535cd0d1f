"""Fixtures wiring the lifecycle and payment services onto the in-memory store."""

from dataclasses import dataclass

import pytest

from src.ec_catalog.domain.models import ServiceType
from src.ec_common.enums import PaymentMode
from src.ec_identity.domain.models import Angel, Elderly, FamilyMember
from src.ec_order.application.service import OrderLifecycleService
from src.ec_payment.application.service import PaymentApplicationService
from src.ec_payment.domain.config import SettlementConfig
from src.ec_payment.domain.settlement import SettlementService
from src.ec_payment.infrastructure.gateway import SandboxPaymentGateway
from tests.unit.fakes import (
    FakeCatalogRepository,
    FakeIdentityRepository,
    FakeLedgerRepository,
    FakeOrderRepository,
    FakePublisher,
    FakeSession,
    FakeTimelineRepository,
    InMemoryStore,
)

WEBHOOK_SECRET = "test-webhook-secret"
ESCORT_PRICE = 8000


@dataclass
class World:
    store: InMemoryStore
    db: FakeSession
    orders: FakeOrderRepository
    timeline: FakeTimelineRepository
    identity: FakeIdentityRepository
    catalog: FakeCatalogRepository
    ledger: FakeLedgerRepository
    publisher: FakePublisher
    gateway: SandboxPaymentGateway
    settlement: SettlementService
    payments: PaymentApplicationService
    lifecycle: OrderLifecycleService
    family: FamilyMember
    elderly: Elderly
    angel_a: Angel
    angel_b: Angel


def build_world(
    mode: PaymentMode = PaymentMode.PRODUCTION,
    gateway: SandboxPaymentGateway | None = None,
    allow_accept_before_payment: bool = True,
) -> World:
    store = InMemoryStore()
    family = FamilyMember(id="u-1", name="Zhang", phone="13800000001")
    elderly = Elderly(id="e-1", name="Grandma Zhang", phone=None, user_id="u-1")
    angel_a = Angel(id="a-1", name="Li", phone="13900000001")
    angel_b = Angel(id="a-2", name="Wang", phone="13900000002")
    store.family[family.id] = family
    store.elderly[elderly.id] = elderly
    store.angels[angel_a.id] = angel_a
    store.angels[angel_b.id] = angel_b
    store.service_types["ST-ESCORT-MEDICAL"] = ServiceType(
        id="ST-ESCORT-MEDICAL", name="陪同就医", price=ESCORT_PRICE
    )

    orders = FakeOrderRepository(store)
    timeline = FakeTimelineRepository(store)
    identity = FakeIdentityRepository(store)
    catalog = FakeCatalogRepository(store)
    ledger = FakeLedgerRepository(store)
    publisher = FakePublisher()
    gw = gateway or SandboxPaymentGateway(webhook_secret=WEBHOOK_SECRET)
    config = SettlementConfig(mode=mode, commission_bps=2000)
    settlement = SettlementService(ledger, config)
    payments = PaymentApplicationService(
        order_repo=orders,
        timeline_repo=timeline,
        ledger=ledger,
        catalog_repo=catalog,
        gateway=gw,
        config=config,
        settlement=settlement,
        publisher=publisher,  # type: ignore[arg-type]
        withdraw_min_cents=1000,
    )
    lifecycle = OrderLifecycleService(
        order_repo=orders,
        timeline_repo=timeline,
        identity_repo=identity,
        catalog_repo=catalog,
        settlement=settlement,
        payments=payments,
        publisher=publisher,  # type: ignore[arg-type]
        allow_accept_before_payment=allow_accept_before_payment,
    )
    return World(
        store=store,
        db=FakeSession(),
        orders=orders,
        timeline=timeline,
        identity=identity,
        catalog=catalog,
        ledger=ledger,
        publisher=publisher,
        gateway=gw,
        settlement=settlement,
        payments=payments,
        lifecycle=lifecycle,
        family=family,
        elderly=elderly,
        angel_a=angel_a,
        angel_b=angel_b,
    )


@pytest.fixture
def world() -> World:
    return build_world()


@pytest.fixture
def sandbox_world() -> World:
    return build_world(mode=PaymentMode.SANDBOX)
