"""
CarbonLedger - Journal Tests
=============================
Unit tests for JournaledDict and staged copies of the ledger state.
"""

import pytest

from carbon_ledger.domain.journal import JournaledDict
from carbon_ledger.domain.state import LedgerState

from conftest import ADMIN, OFFSETTER, OTHER, POOL


class TestJournaledDict:
    """Test JournaledDict class"""

    def test_writes_stay_in_journal(self):
        committed = {"wallet_1": 10}
        staged = JournaledDict.over(committed)

        staged["wallet_1"] = 25
        staged["wallet_2"] = 5

        assert staged["wallet_1"] == 25
        assert dict(staged) == {"wallet_1": 25, "wallet_2": 5}
        assert committed == {"wallet_1": 10}
        assert staged.written() == {"wallet_1": 25, "wallet_2": 5}

    def test_delete_and_len(self):
        staged = JournaledDict.over({"a": 1, "b": 2})

        del staged["a"]
        staged["c"] = 3

        assert "a" not in staged
        assert staged.get("a") is None
        assert len(staged) == 2
        assert sorted(staged) == ["b", "c"]
        assert staged.deleted() == {"a"}

        with pytest.raises(KeyError):
            del staged["a"]

    def test_commit_applies_journal(self):
        committed = {"a": 1, "b": 2}
        staged = JournaledDict.over(committed)
        staged["a"] = 10
        del staged["b"]

        staged.commit()

        assert committed == {"a": 10}
        assert not staged.dirty

    def test_over_clean_journal_does_not_nest(self):
        committed = {"a": 1}
        first = JournaledDict.over(committed)
        first["a"] = 2
        first.commit()

        second = JournaledDict.over(first)
        second["a"] = 3
        second.commit()

        assert committed == {"a": 3}

    def test_equality_with_dict(self):
        staged = JournaledDict.over({"a": 1})
        staged["b"] = 2

        assert staged == {"a": 1, "b": 2}


class TestStagedCopy:
    """Test LedgerState.staged_copy"""

    def test_staged_changes_do_not_leak(self):
        state = LedgerState.genesis(admin=ADMIN)
        staged = state.staged_copy()

        staged.access.add_offsetter(ADMIN, OFFSETTER)
        staged.records.issue(OFFSETTER, 500, POOL, "wind farm", now=1000)

        assert state.records.offset_counter == 0
        assert state.ledger.total_supply == 0
        assert state.ledger.balance_of(OFFSETTER) == 0
        assert not state.access.is_offsetter(OFFSETTER)
        assert staged.ledger.balance_of(OFFSETTER) == 500

    def test_components_point_to_staged_copy(self):
        staged = LedgerState.genesis(admin=ADMIN).staged_copy()

        assert staged.records.ledger is staged.ledger
        assert staged.records.access is staged.access
        assert staged.records.aggregates is staged.aggregates
        assert staged.metadata.records is staged.records

    def test_commit_publishes_only_touched_keys(self):
        state = LedgerState.genesis(admin=ADMIN)
        state.ledger.mint(10, OTHER)
        staged = state.staged_copy()

        staged.ledger.mint(5, OFFSETTER)

        assert staged.ledger.balances.written() == {OFFSETTER: 5}

        staged.commit()

        assert staged.ledger.balances == {OTHER: 10, OFFSETTER: 5}
        assert staged.check_invariants() == []
