"""
CarbonLedger - Services Package
================================
Capability esterne usate dal ledger.
"""

from carbon_ledger.services.payment_service import (
    PaymentGateway,
    PaymentTransfer,
    InMemoryPaymentGateway,
)

__all__ = [
    "PaymentGateway",
    "PaymentTransfer",
    "InMemoryPaymentGateway",
]
