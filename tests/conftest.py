import pytest
from salesrecon.core.audit import InMemoryAuditRepository, audit_repo
from salesrecon.core.config import settings
from salesrecon.core.engine import FulfillmentEngine, engine as app_engine
from salesrecon.db.memory import STORE, MemoryStore
from salesrecon.schemas.party import PartyTaxProfile
from salesrecon.schemas.series import NumberSeries


@pytest.fixture
def audit():
    return InMemoryAuditRepository()


@pytest.fixture
def engine(audit):
    """Engine over a fresh store, with an 'INV' series (INV-0001, INV-0002, ...)."""
    eng = FulfillmentEngine(MemoryStore(), audit)
    eng.register_series(NumberSeries(name="INV", prefix="INV-"))
    return eng


@pytest.fixture
def clean_app():
    """Reset the global store and audit log behind the FastAPI app."""
    STORE.clear()
    audit_repo.clear()
    app_engine.register_series(NumberSeries(
        name=settings.DEFAULT_INVOICE_SERIES,
        prefix=f"{settings.DEFAULT_INVOICE_SERIES}-",
    ))
    yield
    STORE.clear()
    audit_repo.clear()


@pytest.fixture
def assam_seller():
    return PartyTaxProfile(name="Sri Hari Marketing", state_name="Assam", state_code="18")


@pytest.fixture
def assam_buyer():
    return PartyTaxProfile(name="Brahmaputra Infra", state_code="18", gstin="18AABCB1234C1Z5")


@pytest.fixture
def maharashtra_buyer():
    return PartyTaxProfile(name="Deccan Roadways", gstin="27AAAAA0000A1Z5")

