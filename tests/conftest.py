import pytest
import pytest_asyncio

from chalostore.checkout import CheckoutOrchestrator
from chalostore.db import create_engine, create_session_factory, init_db
from chalostore.models import Product
from chalostore.store import OrderRepository, ProductRepository

from .fakes import (
    FakeCatalog,
    FakePaymentGateway,
    RecordingEventPublisher,
    RecordingNotificationSink,
)


@pytest.fixture
def laptop():
    return Product(id=1, sku="SKU-001", name="Laptop", stock=5, price=1000.0)


@pytest.fixture
def catalog(laptop):
    return FakeCatalog(laptop)


@pytest.fixture
def payments():
    return FakePaymentGateway()


@pytest.fixture
def notifier():
    return RecordingNotificationSink()


@pytest.fixture
def publisher():
    return RecordingEventPublisher()


@pytest.fixture
def orchestrator(catalog, payments, notifier, publisher):
    return CheckoutOrchestrator(catalog, payments, notifier, publisher, catalog)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    await init_db(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def product_repository(session_factory):
    return ProductRepository(session_factory)


@pytest.fixture
def order_repository(session_factory):
    return OrderRepository(session_factory)
