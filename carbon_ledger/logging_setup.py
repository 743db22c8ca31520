"""
CarbonLedger - Logging System
==============================
Sistema logging strutturato JSON per audit e debugging.

Security Level: HIGH
Last Updated: 2026-10-19
Version: 1.0.0

Features:
- Logging JSON strutturato
- Rotation automatica
- Context enrichment
- Performance tracking
- Audit trail (issuance, retirement, admin actions)
"""

import logging
import logging.handlers
import json
import sys
import time
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime, timezone
import traceback


# ============================================================================
# JSON FORMATTER
# ============================================================================

def _utc_from_timestamp(created: float) -> datetime:
    return datetime.fromtimestamp(created, tz=timezone.utc)


class JSONFormatter(logging.Formatter):
    """
    Formatter per log in formato JSON.

    Output structure:
    {
        "timestamp": "2026-10-19T10:00:00.000000Z",
        "level": "INFO",
        "logger": "carbonledger.offset_manager",
        "message": "Offset issued",
        "extra_data": {...},
        "exception": {...}
    }
    """

    def __init__(
        self,
        include_extra: bool = True,
        include_stack: bool = True
    ):
        super().__init__()
        self.include_extra = include_extra
        self.include_stack = include_stack

    def format(self, record: logging.LogRecord) -> str:
        """
        Formatta LogRecord in JSON.

        Args:
            record: LogRecord da formattare

        Returns:
            str: JSON string
        """
        log_data = {
            "timestamp": _utc_from_timestamp(record.created).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.thread:
            log_data["thread_id"] = record.thread
            log_data["thread_name"] = record.threadName

        if record.process:
            log_data["process_id"] = record.process

        # Extra data (custom fields)
        if self.include_extra and hasattr(record, 'extra_data'):
            log_data["extra_data"] = record.extra_data

        if record.exc_info and self.include_stack:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info)
            }

        return json.dumps(log_data, default=str)


# ============================================================================
# TEXT FORMATTER (Human-Readable)
# ============================================================================

class ColoredTextFormatter(logging.Formatter):
    """
    Formatter colorato per console.

    Colors:
    - DEBUG: Gray
    - INFO: Green
    - WARNING: Yellow
    - ERROR: Red
    - CRITICAL: Bold Red
    """

    COLORS = {
        'DEBUG': '\033[90m',
        'INFO': '\033[92m',
        'WARNING': '\033[93m',
        'ERROR': '\033[91m',
        'CRITICAL': '\033[1;91m',
        'RESET': '\033[0m'
    }

    def format(self, record: logging.LogRecord) -> str:
        """Formatta con colori"""
        levelname = record.levelname
        if levelname in self.COLORS:
            levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"

        timestamp = _utc_from_timestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')

        message = f"{timestamp} [{levelname}] {record.name}: {record.getMessage()}"

        if getattr(record, 'extra_data', None):
            message += f" | {record.extra_data}"

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


# ============================================================================
# LOGGER CLASS
# ============================================================================

class CarbonLedgerLogger:
    """
    Wrapper logger con structured logging (extra_data).
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(
        self,
        level: int,
        message: str,
        extra_data: Optional[Dict[str, Any]] = None,
        exc_info=None
    ):
        self._logger.log(
            level,
            message,
            exc_info=exc_info,
            extra={'extra_data': extra_data} if extra_data else {}
        )

    def debug(self, message: str, extra_data: Optional[Dict] = None):
        self._log(logging.DEBUG, message, extra_data)

    def info(self, message: str, extra_data: Optional[Dict] = None):
        self._log(logging.INFO, message, extra_data)

    def warning(self, message: str, extra_data: Optional[Dict] = None):
        self._log(logging.WARNING, message, extra_data)

    def critical(self, message: str, extra_data: Optional[Dict] = None, exc_info=None):
        self._log(logging.CRITICAL, message, extra_data, exc_info)


# ============================================================================
# SETUP FUNCTION
# ============================================================================

def setup_logging(
    log_level: str = "INFO",
    log_to_file: bool = True,
    log_dir: Path = Path("./logs"),
    log_format: str = "json",
    log_rotation_mb: int = 100,
    log_retention_days: int = 30,
    enable_console: bool = True,
) -> CarbonLedgerLogger:
    """
    Setup logging system completo.

    Args:
        log_level: Level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Salva su file
        log_dir: Directory log files
        log_format: Formato (json, text)
        log_rotation_mb: MB prima rotation
        log_retention_days: File di backup mantenuti
        enable_console: Log anche su console

    Returns:
        CarbonLedgerLogger: Logger configurato

    Example:
        >>> logger = setup_logging(log_level="DEBUG", log_to_file=False)
        >>> logger.info("Ledger started", extra_data={"admin": "deployer"})
    """
    root_logger = logging.getLogger("carbonledger")
    root_logger.setLevel(getattr(logging, log_level.upper()))

    root_logger.handlers.clear()

    # ========================================================================
    # FILE HANDLER (with rotation)
    # ========================================================================

    if log_to_file:
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_dir / "carbonledger.log",
            maxBytes=log_rotation_mb * 1024 * 1024,
            backupCount=log_retention_days,
            encoding='utf-8'
        )

        if log_format == "json":
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
                )
            )

        root_logger.addHandler(file_handler)

    # ========================================================================
    # CONSOLE HANDLER
    # ========================================================================

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColoredTextFormatter())
        root_logger.addHandler(console_handler)

    return CarbonLedgerLogger(root_logger)


def configure_logging(config, enable_console: bool = True) -> CarbonLedgerLogger:
    """Setup logging dai campi log_* di LedgerSettings"""
    return setup_logging(
        log_level=config.log_level,
        log_to_file=config.log_to_file,
        log_dir=config.log_dir,
        log_format=config.log_format,
        log_rotation_mb=config.log_rotation_mb,
        log_retention_days=config.log_retention_days,
        enable_console=enable_console,
    )


# ============================================================================
# CATEGORY LOGGERS
# ============================================================================

def get_logger(category: str) -> CarbonLedgerLogger:
    """
    Ottieni logger per categoria specifica.

    Args:
        category: Categoria (ledger, offset_manager, storage, etc.)

    Returns:
        CarbonLedgerLogger: Logger per categoria

    Example:
        >>> ledger_logger = get_logger("ledger")
        >>> ledger_logger.debug("Minted", extra_data={"amount": 500})
    """
    return CarbonLedgerLogger(logging.getLogger(f"carbonledger.{category}"))


# ============================================================================
# PERFORMANCE TRACKING
# ============================================================================

class PerformanceLogger:
    """
    Context manager per tracking performance.

    Example:
        >>> logger = get_logger("storage")
        >>> with PerformanceLogger(logger, "save_state", threshold_ms=200):
        ...     db.save_state(state)
    """

    def __init__(
        self,
        logger: CarbonLedgerLogger,
        operation: str,
        threshold_ms: Optional[int] = None
    ):
        self.logger = logger
        self.operation = operation
        self.threshold_ms = threshold_ms
        self.start_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed_ms = (time.perf_counter() - self.start_time) * 1000

        extra = {
            "operation": self.operation,
            "duration_ms": round(elapsed_ms, 2)
        }

        if self.threshold_ms and elapsed_ms > self.threshold_ms:
            self.logger.warning(
                f"{self.operation} took {elapsed_ms:.2f}ms (threshold: {self.threshold_ms}ms)",
                extra_data=extra
            )
        else:
            self.logger.debug(
                f"{self.operation} completed in {elapsed_ms:.2f}ms",
                extra_data=extra
            )


# ============================================================================
# AUDIT LOGGER
# ============================================================================

class AuditLogger:
    """
    Logger specializzato per audit trail.

    Use for:
    - Offset issuance
    - Offset retirement
    - Admin actions (fee, pause, offsetter whitelist)
    - CCT transfers
    """

    def __init__(self, log_dir: Path = Path("./logs")):
        self.log_dir = log_dir
        self.log_dir.mkdir(parents=True, exist_ok=True)

        audit_file = (log_dir / "audit.log").resolve()

        self.logger = logging.getLogger("carbonledger.audit")
        self.logger.setLevel(logging.INFO)

        # Un solo handler per file (no rotation per audit - keep all)
        already_attached = any(
            isinstance(h, logging.FileHandler)
            and Path(h.baseFilename) == audit_file
            for h in self.logger.handlers
        )
        if not already_attached:
            handler = logging.FileHandler(audit_file, encoding='utf-8')
            handler.setFormatter(JSONFormatter(include_extra=True))
            self.logger.addHandler(handler)

    def _write(self, message: str, action: str, **fields):
        fields["action"] = action
        fields["timestamp"] = datetime.now(timezone.utc).isoformat()
        self.logger.info(message, extra={'extra_data': fields})

    def log_offset_issued(
        self,
        offset_id: int,
        owner: Any,
        amount: int,
        pool: Any,
        payment: int
    ):
        """Log offset issuance"""
        self._write(
            "Offset issued",
            "offset_issued",
            offset_id=offset_id,
            owner=str(owner),
            amount=amount,
            pool=str(pool),
            payment=payment,
        )

    def log_offset_retired(self, offset_id: int, owner: Any, amount: int):
        """Log offset retirement"""
        self._write(
            "Offset retired",
            "offset_retired",
            offset_id=offset_id,
            owner=str(owner),
            amount=amount,
        )

    def log_admin_action(self, action: str, caller: Any, **details):
        """Log admin operation"""
        self._write(
            f"Admin action: {action}",
            action,
            caller=str(caller),
            **{k: str(v) for k, v in details.items()},
        )

    def log_transfer(self, sender: Any, recipient: Any, amount: int):
        """Log CCT transfer"""
        self._write(
            "Credits transferred",
            "credits_transferred",
            sender=str(sender),
            recipient=str(recipient),
            amount=amount,
        )


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "setup_logging",
    "configure_logging",
    "get_logger",
    "CarbonLedgerLogger",
    "PerformanceLogger",
    "AuditLogger",
    "JSONFormatter",
    "ColoredTextFormatter",
]
