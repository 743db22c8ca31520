"""
CarbonLedger - Configuration Management
=======================================
Gestione centralizzata configurazione con Pydantic Settings.
Supporta environment variables, file .env, override runtime.

Security Level: HIGH
Last Updated: 2026-10-19
Version: 1.0.0

Features:
- Validazione automatica tipi
- Environment variables con prefisso CARBONLEDGER_
- File .env support
- Profile multipli (dev/test/prod)
"""

import os
from pathlib import Path
from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from carbon_ledger.constants import (
    MAX_SUPPLY,
    DEFAULT_OFFSET_FEE,
    DEFAULT_GENESIS_HEIGHT,
    CLOCK_MODES,
)


# ============================================================================
# MAIN CONFIGURATION CLASS
# ============================================================================

class LedgerSettings(BaseSettings):
    """
    Configurazione principale CarbonLedger.

    Example:
        # Da environment
        export CARBONLEDGER_ADMIN="SP3ADMIN"
        export CARBONLEDGER_OFFSET_FEE=250

        # Da codice
        config = LedgerSettings(admin="deployer", persist_state=False)
    """

    model_config = SettingsConfigDict(
        env_prefix='CARBONLEDGER_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    # ========================================================================
    # GENESIS STATE
    # ========================================================================

    admin: str = Field(
        default="deployer",
        description="Admin iniziale del ledger"
    )

    register_admin_as_offsetter: bool = Field(
        default=True,
        description="Registra l'admin iniziale come offsetter al genesis"
    )

    offset_fee: int = Field(
        default=DEFAULT_OFFSET_FEE,
        ge=0,
        description="Fee iniziale per unità di offset"
    )

    max_supply: int = Field(
        default=MAX_SUPPLY,
        ge=1,
        description="Supply massima CCT"
    )

    # ========================================================================
    # CLOCK
    # ========================================================================

    clock_mode: str = Field(
        default="block",
        description="Sorgente tempo logico: block, system"
    )

    genesis_height: int = Field(
        default=DEFAULT_GENESIS_HEIGHT,
        ge=0,
        description="Block height iniziale (clock_mode=block)"
    )

    # ========================================================================
    # ERROR REPORTING
    # ========================================================================

    legacy_not_found_code: bool = Field(
        default=False,
        description="Riporta record inesistente come INVALID_AMOUNT (102)"
    )

    # ========================================================================
    # STORAGE
    # ========================================================================

    persist_state: bool = Field(
        default=False,
        description="Persisti lo stato committato su database"
    )

    data_dir: Path = Field(
        default=Path("./data"),
        description="Directory dati ledger"
    )

    db_path: Optional[Path] = Field(
        default=None,
        description="Path database (auto: data_dir/carbonledger.db)"
    )

    db_echo: bool = Field(
        default=False,
        description="Log SQL statements (SQLAlchemy echo)"
    )

    # ========================================================================
    # LOGGING
    # ========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )

    log_to_file: bool = Field(
        default=True,
        description="Salva log su file"
    )

    log_dir: Path = Field(
        default=Path("./logs"),
        description="Directory log files"
    )

    log_format: str = Field(
        default="json",
        description="Formato log: json, text"
    )

    log_rotation_mb: int = Field(
        default=100,
        ge=1,
        description="Dimensione max file log prima rotation (MB)"
    )

    log_retention_days: int = Field(
        default=30,
        ge=1,
        description="File di backup log mantenuti"
    )

    audit_enabled: bool = Field(
        default=True,
        description="Scrivi audit trail (log_dir/audit.log)"
    )

    # ========================================================================
    # VALIDATORS
    # ========================================================================

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Valida log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log_level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Valida formato log"""
        v_lower = v.lower()
        if v_lower not in ('json', 'text'):
            raise ValueError(f"Invalid log_format: {v}. Must be json or text")
        return v_lower

    @field_validator('clock_mode')
    @classmethod
    def validate_clock_mode(cls, v: str) -> str:
        """Valida sorgente clock"""
        v_lower = v.lower()
        if v_lower not in CLOCK_MODES:
            raise ValueError(f"Invalid clock_mode: {v}. Must be one of {list(CLOCK_MODES)}")
        return v_lower

    @field_validator('admin')
    @classmethod
    def validate_admin(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("admin must be a non-empty identifier")
        return v

    # ========================================================================
    # POST-INIT PROCESSING
    # ========================================================================

    def model_post_init(self, __context) -> None:
        """Post-initialization: setup paths"""
        if self.db_path is None:
            self.db_path = self.data_dir / "carbonledger.db"

        if self.persist_state:
            self.data_dir.mkdir(parents=True, exist_ok=True)

    # ========================================================================
    # HELPER METHODS
    # ========================================================================

    def database_url(self) -> str:
        """URL SQLAlchemy per db_path"""
        return f"sqlite:///{self.db_path}"

    def to_dict(self) -> dict:
        """Serializza config"""
        return self.model_dump()

    def to_json(self) -> str:
        """Serializza config in JSON"""
        return self.model_dump_json(indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> "LedgerSettings":
        """Carica config da JSON"""
        return cls.model_validate_json(json_str)

    @classmethod
    def from_file(cls, path: Path) -> "LedgerSettings":
        """Carica config da file JSON"""
        return cls.model_validate_json(path.read_text())

    def save_to_file(self, path: Path) -> None:
        """Salva config su file"""
        path.write_text(self.to_json())

    def __repr__(self) -> str:
        return (
            f"LedgerSettings("
            f"admin={self.admin}, "
            f"offset_fee={self.offset_fee}, "
            f"clock_mode={self.clock_mode}, "
            f"persist_state={self.persist_state})"
        )


# ============================================================================
# SINGLETON INSTANCE
# ============================================================================

@lru_cache(maxsize=1)
def get_settings() -> LedgerSettings:
    """
    Ottieni singleton instance di LedgerSettings.

    Returns:
        LedgerSettings: Instance configurazione

    Example:
        >>> config = get_settings()
        >>> config.offset_fee
        100
    """
    return LedgerSettings()


def reload_settings() -> LedgerSettings:
    """
    Ricarica settings (invalida cache).

    Usare quando si cambiano environment variables runtime.
    """
    get_settings.cache_clear()
    return get_settings()


def override_settings(**kwargs) -> LedgerSettings:
    """
    Override settings con valori custom.

    Utile per testing.

    Example:
        >>> test_config = override_settings(log_to_file=False, audit_enabled=False)
    """
    return LedgerSettings(**kwargs)


# ============================================================================
# PROFILE PRESETS
# ============================================================================

def get_development_config() -> LedgerSettings:
    """
    Config preset per development.

    Features:
    - Clock a block height (deterministico)
    - Log DEBUG su console, niente file
    - Nessuna persistenza
    """
    return LedgerSettings(
        clock_mode="block",
        log_level="DEBUG",
        log_to_file=False,
        audit_enabled=False,
        persist_state=False,
    )


def get_production_config() -> LedgerSettings:
    """
    Config preset per production.

    Features:
    - Stato persistito su database
    - Clock di sistema
    - Log WARNING + audit trail
    """
    return LedgerSettings(
        clock_mode="system",
        persist_state=True,
        log_level="WARNING",
        audit_enabled=True,
    )


# ============================================================================
# CONFIGURATION VALIDATION
# ============================================================================

def validate_config(config: LedgerSettings) -> tuple[bool, list[str]]:
    """
    Valida configurazione completa.

    Args:
        config: LedgerSettings da validare

    Returns:
        tuple: (is_valid, errors_list)

    Example:
        >>> is_valid, errors = validate_config(get_settings())
    """
    errors = []

    if config.persist_state and not os.access(config.data_dir, os.W_OK):
        errors.append(f"Directory not writable: {config.data_dir}")

    if config.log_to_file or config.audit_enabled:
        log_parent = config.log_dir if config.log_dir.exists() else config.log_dir.parent
        if not os.access(log_parent, os.W_OK):
            errors.append(f"Directory not writable: {config.log_dir}")

    if config.offset_fee == 0:
        errors.append("WARNING: offset_fee=0 makes every issuance fail (zero payments are rejected)")

    return (len(errors) == 0, errors)


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "LedgerSettings",
    "get_settings",
    "reload_settings",
    "override_settings",
    "get_development_config",
    "get_production_config",
    "validate_config",
]
