"""
CarbonLedger - Pytest Configuration
====================================
Fixtures e configurazione per testing.

Last Updated: 2026-10-19
Version: 1.0.0
"""

import pytest

# Internal imports
from carbon_ledger.config import override_settings
from carbon_ledger.contracts.offset_manager import OffsetManager
from carbon_ledger.domain.clock import BlockHeightClock
from carbon_ledger.services.payment_service import InMemoryPaymentGateway
from carbon_ledger.storage.db import LedgerDatabase


ADMIN = "deployer"
OFFSETTER = "wallet_1"
OTHER = "wallet_2"
POOL = "pool"

INITIAL_FUNDS = 1_000_000_000


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================

@pytest.fixture
def test_config(tmp_path):
    """Test configuration (niente file di log, niente persistenza)"""
    return override_settings(
        admin=ADMIN,
        log_to_file=False,
        audit_enabled=False,
        persist_state=False,
        data_dir=tmp_path / "data",
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def clock():
    """Clock a block height 1000"""
    return BlockHeightClock(1000)


# ============================================================================
# PAYMENT FIXTURES
# ============================================================================

@pytest.fixture
def payment_gateway():
    """Gateway in-memory con fondi per admin e wallet di test"""
    return InMemoryPaymentGateway({
        ADMIN: INITIAL_FUNDS,
        OFFSETTER: INITIAL_FUNDS,
        OTHER: INITIAL_FUNDS,
    })


# ============================================================================
# LEDGER FIXTURES
# ============================================================================

@pytest.fixture
def manager(payment_gateway, test_config, clock):
    """OffsetManager al genesis"""
    ledger = OffsetManager(payment_gateway, config=test_config, clock=clock)
    yield ledger
    ledger.close()


@pytest.fixture
def offsetter_manager(manager):
    """OffsetManager con OFFSETTER registrato"""
    manager.add_offsetter(ADMIN, OFFSETTER).unwrap()
    return manager


@pytest.fixture
def issued_manager(offsetter_manager):
    """OffsetManager con offset #1 (500 CCT) emesso da OFFSETTER"""
    offsetter_manager.issue(OFFSETTER, 500, POOL, "wind farm").unwrap()
    return offsetter_manager


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

@pytest.fixture
def memory_database():
    """Database SQLite in-memory"""
    db = LedgerDatabase("sqlite://")
    yield db
    db.close()


@pytest.fixture
def persistent_config(tmp_path):
    """Configurazione con persistenza su file temporaneo"""
    return override_settings(
        admin=ADMIN,
        log_to_file=False,
        audit_enabled=False,
        persist_state=True,
        data_dir=tmp_path / "data",
        log_dir=tmp_path / "logs",
    )
