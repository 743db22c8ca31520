"""
CarbonLedger - Configuration Tests
===================================
Unit tests for LedgerSettings and logging setup.
"""

import json
import logging

import pytest
from pydantic import ValidationError

from carbon_ledger.config import (
    LedgerSettings,
    get_development_config,
    get_production_config,
    get_settings,
    override_settings,
    reload_settings,
    validate_config,
)
from carbon_ledger.contracts.offset_manager import OffsetManager
from carbon_ledger.logging_setup import (
    AuditLogger,
    JSONFormatter,
    configure_logging,
    get_logger,
)

from conftest import ADMIN, OFFSETTER, POOL


class TestLedgerSettings:
    """Test LedgerSettings"""

    def test_defaults(self, tmp_path):
        config = LedgerSettings(data_dir=tmp_path)

        assert config.admin == "deployer"
        assert config.offset_fee == 100
        assert config.clock_mode == "block"
        assert config.genesis_height == 1000
        assert config.legacy_not_found_code is False
        assert config.db_path == tmp_path / "carbonledger.db"
        assert config.database_url() == f"sqlite:///{tmp_path / 'carbonledger.db'}"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("CARBONLEDGER_OFFSET_FEE", "250")
        monkeypatch.setenv("CARBONLEDGER_ADMIN", "SP3ADMIN")

        config = LedgerSettings()

        assert config.offset_fee == 250
        assert config.admin == "SP3ADMIN"

    @pytest.mark.parametrize("field,value", [
        ("log_level", "VERBOSE"),
        ("log_format", "xml"),
        ("clock_mode", "lunar"),
        ("offset_fee", -1),
        ("admin", "  "),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            LedgerSettings(**{field: value})

    def test_normalization(self):
        config = LedgerSettings(log_level="debug", clock_mode="SYSTEM")

        assert config.log_level == "DEBUG"
        assert config.clock_mode == "system"

    def test_json_round_trip(self, tmp_path):
        config = override_settings(offset_fee=42, data_dir=tmp_path)
        path = tmp_path / "config.json"

        config.save_to_file(path)
        loaded = LedgerSettings.from_file(path)

        assert loaded.offset_fee == 42
        assert loaded.db_path == config.db_path

    def test_development_profile(self):
        config = get_development_config()

        assert config.log_level == "DEBUG"
        assert config.persist_state is False
        assert config.audit_enabled is False

    def test_validate_config_warns_on_zero_fee(self, tmp_path):
        config = override_settings(offset_fee=0, log_dir=tmp_path, data_dir=tmp_path)

        is_valid, errors = validate_config(config)

        assert not is_valid
        assert any("offset_fee=0" in error for error in errors)

    def test_genesis_height_drives_clock(self, payment_gateway):
        config = override_settings(
            genesis_height=5000, log_to_file=False, audit_enabled=False
        )
        ledger = OffsetManager(payment_gateway, config=config)

        ledger.issue(ADMIN, 1, POOL, "height").unwrap()

        assert ledger.get_record(1).created_at == 5000


class TestLogging:
    """Test logging strutturato e audit trail"""

    def test_category_logger_name(self):
        assert get_logger("storage").name == "carbonledger.storage"

    def test_json_formatter_includes_extra_data(self):
        record = logging.LogRecord(
            "carbonledger.ledger", logging.INFO, __file__, 1, "Minted", None, None
        )
        record.extra_data = {"amount": 500}

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "Minted"
        assert data["level"] == "INFO"
        assert data["extra_data"] == {"amount": 500}

    def test_configure_logging_writes_file(self, tmp_path):
        config = override_settings(log_dir=tmp_path, log_level="DEBUG")

        logger = configure_logging(config, enable_console=False)
        logger.info("Ledger started", extra_data={"admin": ADMIN})
        for handler in logging.getLogger("carbonledger").handlers:
            handler.flush()

        line = (tmp_path / "carbonledger.log").read_text().strip().splitlines()[-1]
        assert json.loads(line)["extra_data"] == {"admin": ADMIN}

        logging.getLogger("carbonledger").handlers.clear()

    def test_audit_trail(self, payment_gateway, clock, tmp_path):
        config = override_settings(
            log_to_file=False, audit_enabled=True, log_dir=tmp_path
        )
        ledger = OffsetManager(payment_gateway, config=config, clock=clock)

        ledger.add_offsetter(ADMIN, OFFSETTER).unwrap()
        ledger.issue(OFFSETTER, 500, POOL, "wind farm").unwrap()
        ledger.retire(OFFSETTER, 1).unwrap()
        ledger.issue(OFFSETTER, 0, POOL, "rejected")

        for handler in logging.getLogger("carbonledger.audit").handlers:
            handler.flush()

        entries = [
            json.loads(line)["extra_data"]
            for line in (tmp_path / "audit.log").read_text().splitlines()
        ]
        actions = [entry["action"] for entry in entries]

        assert actions == ["add_offsetter", "offset_issued", "offset_retired"]
        assert entries[1]["payment"] == 50_000

    def test_audit_logger_single_handler_per_file(self, tmp_path):
        AuditLogger(tmp_path)
        AuditLogger(tmp_path)

        handlers = [
            h for h in logging.getLogger("carbonledger.audit").handlers
            if getattr(h, "baseFilename", "").startswith(str(tmp_path.resolve()))
        ]
        assert len(handlers) == 1


class TestProfiles:
    """Test preset e singleton"""

    def test_production_profile(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        config = get_production_config()

        assert config.persist_state is True
        assert config.clock_mode == "system"
        assert (tmp_path / "data").is_dir()

    def test_reload_settings(self, monkeypatch):
        monkeypatch.setenv("CARBONLEDGER_OFFSET_FEE", "321")

        assert reload_settings().offset_fee == 321
        assert get_settings() is get_settings()

        monkeypatch.delenv("CARBONLEDGER_OFFSET_FEE")
        reload_settings()
