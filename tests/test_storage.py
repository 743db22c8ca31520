"""
CarbonLedger - Storage Tests
=============================
Unit tests for database persistence of the ledger state.
"""

import pytest
from sqlalchemy import update

from carbon_ledger.constants import ErrorKind, OffsetStatus
from carbon_ledger.contracts.offset_manager import OffsetManager
from carbon_ledger.domain.state import LedgerState
from carbon_ledger.errors import (
    DatabaseCorruptionError,
    DatabaseError,
    SchemaVersionError,
)
from carbon_ledger.services.payment_service import InMemoryPaymentGateway
from carbon_ledger.storage.db import LedgerDatabase
from carbon_ledger.storage.models_orm import BalanceORM, LedgerMetaORM, OffsetRecordORM

from conftest import ADMIN, INITIAL_FUNDS, OFFSETTER, OTHER, POOL


class FlakyDatabase(LedgerDatabase):
    """Database in cui stage e commit possono fallire a comando"""

    def __init__(self, db_url, events=None):
        super().__init__(db_url)
        self.fail_stage = False
        self.fail_commit = False
        self.events = events if events is not None else []

    def stage_state(self, session, state, committed=None):
        self.events.append("stage")
        if self.fail_stage:
            raise DatabaseError("disk full", code="STATE_SAVE_FAILED")
        super().stage_state(session, state, committed)

    def commit(self, session):
        self.events.append("commit")
        if self.fail_commit:
            raise DatabaseError("connection lost", code="STATE_COMMIT_FAILED")
        super().commit(session)


class RecordingGateway(InMemoryPaymentGateway):
    """Gateway che registra l'ordine delle chiamate"""

    def __init__(self, balances, events):
        super().__init__(balances)
        self.events = events

    def transfer(self, amount, sender, recipient):
        self.events.append("transfer")
        return super().transfer(amount, sender, recipient)


class TestLedgerDatabase:
    """Test LedgerDatabase class"""

    def test_empty_database(self, memory_database):
        assert not memory_database.has_state()
        assert memory_database.load_state() is None

    def test_save_and_load_genesis(self, memory_database):
        memory_database.save_state(LedgerState.genesis(admin=ADMIN, offset_fee=250))

        assert memory_database.has_state()

        loaded = memory_database.load_state()

        assert loaded.access.admin == ADMIN
        assert loaded.access.get_fee() == 250
        assert loaded.access.is_offsetter(ADMIN)
        assert loaded.records.offset_counter == 0

    def test_round_trip_full_state(self, issued_manager, memory_database):
        """Test stato con record, metadata e balances"""
        issued_manager.issue(OFFSETTER, 300, POOL, "second").unwrap()
        issued_manager.retire(OFFSETTER, 1).unwrap()
        issued_manager.transfer_credits(OFFSETTER, 100, OTHER).unwrap()
        issued_manager.remove_offsetter(ADMIN, OTHER).unwrap()
        issued_manager.update_version(OFFSETTER, 2, 1, 280, "recount").unwrap()
        issued_manager.grant_license(OFFSETTER, 2, OTHER, 50, "research").unwrap()
        issued_manager.set_category(OFFSETTER, 2, "forestry", ["eu", "vcs"]).unwrap()
        issued_manager.add_collaborator(OFFSETTER, 2, OTHER, "auditor", ["read"]).unwrap()
        issued_manager.set_revenue_share(OFFSETTER, 2, OTHER, 20).unwrap()
        issued_manager.pause(ADMIN).unwrap()

        memory_database.save_state(issued_manager.state)
        loaded = memory_database.load_state()

        assert loaded.access.paused is True
        assert loaded.access.offsetters == {ADMIN: True, OFFSETTER: True, OTHER: False}
        assert loaded.ledger.balances == issued_manager.state.ledger.balances
        assert loaded.ledger.total_supply == 300
        assert loaded.records.offset_counter == 2
        assert loaded.records.total_offsets == 800
        assert loaded.records.get(1) == issued_manager.get_record(1)
        assert loaded.records.get(1).status == OffsetStatus.RETIRED
        assert loaded.aggregates.get(OFFSETTER) == issued_manager.get_user_aggregate(OFFSETTER)
        assert loaded.metadata.get_version(2, 1) == issued_manager.get_version(2, 1)
        assert loaded.metadata.get_license(2, OTHER) == issued_manager.get_license(2, OTHER)
        assert loaded.metadata.get_category(2).tags == ("eu", "vcs")
        assert loaded.metadata.get_collaborator(2, OTHER).permissions == ("read",)
        assert loaded.metadata.get_revenue_share(2, OTHER).percentage == 20
        assert loaded.check_invariants() == []

    def test_large_payment_survives(self, memory_database):
        state = LedgerState.genesis(admin=ADMIN, offset_fee=10 ** 12)
        state.records.issue(ADMIN, 10 ** 9, POOL, "large", now=1000)

        memory_database.save_state(state)

        assert memory_database.load_state().records.get(1).payment == 10 ** 21

    def test_save_replaces_previous_state(self, memory_database):
        first = LedgerState.genesis(admin=ADMIN)
        first.ledger.mint(10, OTHER)
        memory_database.save_state(first)

        memory_database.save_state(LedgerState.genesis(admin=ADMIN))

        assert memory_database.load_state().ledger.balances == {}

    def test_schema_version_mismatch(self, memory_database):
        memory_database.save_state(LedgerState.genesis(admin=ADMIN))

        with memory_database.engine.begin() as conn:
            conn.execute(
                update(LedgerMetaORM)
                .where(LedgerMetaORM.key == "schema_version")
                .values(value="99")
            )

        with pytest.raises(SchemaVersionError):
            memory_database.load_state()

    def test_corrupted_state_detected(self, memory_database):
        state = LedgerState.genesis(admin=ADMIN)
        state.ledger.mint(10, OTHER)
        memory_database.save_state(state)

        with memory_database.engine.begin() as conn:
            conn.execute(update(BalanceORM).values(amount=11))

        with pytest.raises(DatabaseCorruptionError):
            memory_database.load_state()

    def test_non_string_account_rejected(self, memory_database):
        state = LedgerState.genesis(admin=ADMIN)
        state.ledger.mint(10, 5)

        with pytest.raises(DatabaseError) as exc_info:
            memory_database.save_state(state)

        assert exc_info.value.code == "UNSUPPORTED_ACCOUNT_ID"
        assert not memory_database.has_state()


class TestManagerPersistence:
    """Test OffsetManager con persist_state"""

    def test_state_survives_restart(self, persistent_config, payment_gateway, clock):
        ledger = OffsetManager(payment_gateway, config=persistent_config, clock=clock)
        ledger.add_offsetter(ADMIN, OFFSETTER).unwrap()
        ledger.issue(OFFSETTER, 500, POOL, "wind farm").unwrap()
        ledger.set_fee(ADMIN, 120).unwrap()
        ledger.close()

        assert persistent_config.db_path.exists()

        restarted = OffsetManager(payment_gateway, config=persistent_config, clock=clock)

        assert restarted.get_fee() == 120
        assert restarted.get_balance(OFFSETTER) == 500
        assert restarted.get_record(1).payment == 50_000
        assert restarted.issue(OFFSETTER, 10, POOL, "next").value == 2
        restarted.close()

    def test_failed_operation_not_persisted(self, test_config, payment_gateway, clock):
        database = LedgerDatabase("sqlite://")
        ledger = OffsetManager(payment_gateway, config=test_config, clock=clock, database=database)

        ledger.issue(OFFSETTER, 500, POOL, "not registered")

        assert database.load_state().records.offset_counter == 0
        ledger.close()

    def test_non_string_account_returns_failure(self, test_config, payment_gateway, clock):
        database = LedgerDatabase("sqlite://")
        ledger = OffsetManager(payment_gateway, config=test_config, clock=clock, database=database)

        result = ledger.add_offsetter(ADMIN, 5)

        assert result.error == ErrorKind.STORAGE_FAILURE
        assert result.details["account"] == "5"
        assert not ledger.is_offsetter(5)
        ledger.close()


class TestStagedCommit:
    """Test ordine stage -> pagamento -> commit"""

    @pytest.fixture
    def database(self):
        db = FlakyDatabase("sqlite://")
        yield db
        db.close()

    @pytest.fixture
    def ledger(self, database, test_config, payment_gateway, clock):
        ledger = OffsetManager(payment_gateway, config=test_config, clock=clock, database=database)
        ledger.add_offsetter(ADMIN, OFFSETTER).unwrap()
        database.events.clear()
        return ledger

    def test_rows_staged_before_payment(self, test_config, clock):
        events = []
        database = FlakyDatabase("sqlite://", events)
        gateway = RecordingGateway({OFFSETTER: INITIAL_FUNDS}, events)
        ledger = OffsetManager(gateway, config=test_config, clock=clock, database=database)
        ledger.add_offsetter(ADMIN, OFFSETTER).unwrap()
        events.clear()

        ledger.issue(OFFSETTER, 500, POOL, "wind farm").unwrap()

        assert events == ["stage", "transfer", "commit"]

    def test_stage_failure_charges_nothing(self, ledger, database, payment_gateway):
        database.fail_stage = True

        result = ledger.issue(OFFSETTER, 500, POOL, "wind farm")

        assert result.error == ErrorKind.STORAGE_FAILURE
        assert result.error_code == 113
        assert payment_gateway.transfers == []
        assert payment_gateway.balance_of(OFFSETTER) == INITIAL_FUNDS
        assert payment_gateway.balance_of(POOL) == 0
        assert ledger.get_balance(OFFSETTER) == 0
        assert ledger.get_offset_counter() == 0

        database.fail_stage = False
        assert database.load_state().records.offset_counter == 0
        assert ledger.issue(OFFSETTER, 500, POOL, "wind farm").value == 1

    def test_payment_failure_discards_staged_rows(self, ledger, database):
        ledger.add_offsetter(ADMIN, "unfunded").unwrap()

        result = ledger.issue("unfunded", 500, POOL, "wind farm")

        assert result.error == ErrorKind.INSUFFICIENT_PAYMENT
        loaded = database.load_state()
        assert loaded.records.offset_counter == 0
        assert loaded.ledger.balances == {}
        assert loaded.aggregates.aggregates == {}

    def test_commit_failure_after_payment_keeps_operation(
        self, ledger, database, payment_gateway
    ):
        database.fail_commit = True

        assert ledger.issue(OFFSETTER, 500, POOL, "wind farm").value == 1
        assert payment_gateway.balance_of(POOL) == 50_000
        assert ledger.get_balance(OFFSETTER) == 500
        assert database.load_state().records.offset_counter == 0

        database.fail_commit = False
        ledger.set_fee(ADMIN, 120).unwrap()

        loaded = database.load_state()
        assert loaded.records.get(1) == ledger.get_record(1)
        assert loaded.ledger.balances == {OFFSETTER: 500}
        assert loaded.access.get_fee() == 120

    def test_close_flushes_pending_state(self, persistent_config, payment_gateway, clock):
        database = FlakyDatabase(persistent_config.database_url())
        ledger = OffsetManager(
            payment_gateway, config=persistent_config, clock=clock, database=database
        )
        ledger.add_offsetter(ADMIN, OFFSETTER).unwrap()

        database.fail_commit = True
        ledger.issue(OFFSETTER, 500, POOL, "wind farm").unwrap()
        database.fail_commit = False
        ledger.close()

        restarted = OffsetManager(payment_gateway, config=persistent_config, clock=clock)

        assert restarted.get_record(1).payment == 50_000
        assert restarted.get_balance(OFFSETTER) == 500
        restarted.close()

    def test_commit_writes_only_changed_rows(self, ledger, database):
        ledger.issue(OFFSETTER, 500, POOL, "wind farm").unwrap()

        # Modifica esterna: una riscrittura completa la cancellerebbe
        with database.engine.begin() as conn:
            conn.execute(
                update(OffsetRecordORM)
                .where(OffsetRecordORM.offset_id == 1)
                .values({OffsetRecordORM.metadata_text: "edited"})
            )

        ledger.set_fee(ADMIN, 120).unwrap()

        loaded = database.load_state()
        assert loaded.records.get(1).metadata == "edited"
        assert loaded.access.get_fee() == 120
