"""
CarbonLedger - Aggregate Tracker
=================================
Rollup per account mantenuti insieme agli eventi di lifecycle.
"""

from typing import Dict, Iterable

from carbon_ledger.domain.models import AccountId, OffsetRecord, UserAggregate
from carbon_ledger.constants import OffsetStatus


class AggregateTracker:
    """Aggregati denormalizzati: letture O(1), default tutto a zero"""

    def __init__(self):
        self.aggregates: Dict[AccountId, UserAggregate] = {}

    def get(self, account: AccountId) -> UserAggregate:
        return self.aggregates.get(account, UserAggregate())

    def record_issued(self, account: AccountId, amount: int, now: int) -> UserAggregate:
        aggregate = self.get(account).with_issued(amount, now)
        self.aggregates[account] = aggregate
        return aggregate

    def record_retired(self, account: AccountId, amount: int, now: int) -> UserAggregate:
        aggregate = self.get(account).with_retired(amount, now)
        self.aggregates[account] = aggregate
        return aggregate

    def check_invariants(self, records: Iterable[OffsetRecord]) -> list[str]:
        """
        Confronta gli aggregati con una scansione completa dei record.

        Solo per verifiche/test: le letture non ricalcolano mai dagli scan.
        """
        violations = []
        expected: Dict[AccountId, list] = {}

        for record in records:
            totals = expected.setdefault(record.owner, [0, 0])
            if record.status == OffsetStatus.ACTIVE:
                totals[0] += record.amount
            else:
                totals[1] += record.amount

        for account, aggregate in self.aggregates.items():
            if not aggregate.is_consistent():
                violations.append(f"aggregate of {account} is not total == active + retired")

            active, retired = expected.get(account, (0, 0))
            if (aggregate.active_offset, aggregate.retired_offset) != (active, retired):
                violations.append(
                    f"aggregate of {account} ({aggregate.active_offset}/"
                    f"{aggregate.retired_offset}) != records ({active}/{retired})"
                )

        for account in expected:
            if account not in self.aggregates:
                violations.append(f"missing aggregate for {account}")

        return violations


__all__ = ["AggregateTracker"]
