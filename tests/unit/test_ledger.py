"""Unit tests for the entitlement ledger."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from note_discovery.core.errors import ConfigurationError, ItemNotFound, LedgerContention
from note_discovery.core.ledger import EntitlementLedger
from note_discovery.models.content import RedemptionStatus


class TestEntitlementLedger:
    """Test cases for the EntitlementLedger class."""

    @pytest.fixture
    def ledger(self):
        return EntitlementLedger(lock_timeout=0.5, max_attempts=2)

    def test_unknown_user_has_zero_balance(self, ledger):
        assert ledger.get_balance("new-user") == 0
        assert ledger.get_stats()["accounts"] == 1

    def test_grant(self, ledger):
        assert ledger.grant("u", 30) == 30
        assert ledger.grant("u", 5) == 35
        assert ledger.get_balance("u") == 35

    @pytest.mark.parametrize("amount", [0, -1, 1.5, True])
    def test_grant_rejects_invalid_amounts(self, ledger, amount):
        with pytest.raises(ConfigurationError):
            ledger.grant("u", amount)

    def test_insufficient_credits(self, ledger):
        ledger.grant("u", 10)

        outcome = ledger.attempt_redeem("u", "item", 20)

        assert outcome.status == RedemptionStatus.INSUFFICIENT_CREDITS
        assert outcome.shortfall == 10
        assert outcome.balance == 10
        assert not outcome.succeeded
        assert ledger.get_balance("u") == 10
        assert not ledger.has_entitlement("u", "item")

    def test_unlock_then_replay(self, ledger):
        ledger.grant("u", 30)

        first = ledger.attempt_redeem("u", "item", 20)
        second = ledger.attempt_redeem("u", "item", 20)

        assert first.status == RedemptionStatus.UNLOCKED
        assert first.balance == 10
        assert second.status == RedemptionStatus.ALREADY_UNLOCKED
        assert second.balance == 10
        assert second.succeeded
        assert ledger.get_balance("u") == 10
        assert ledger.has_entitlement("u", "item")

    def test_replay_is_debited_once(self, ledger):
        ledger.grant("u", 100)
        before = ledger.get_balance("u")

        for _ in range(10):
            ledger.attempt_redeem("u", "item", 25)

        assert ledger.get_balance("u") == before - 25
        assert len(ledger.redemptions("u")) == 1

    def test_entitlements_are_per_user(self, ledger):
        ledger.grant("alice", 20)
        ledger.grant("bob", 20)

        ledger.attempt_redeem("alice", "item", 20)

        assert ledger.has_entitlement("alice", "item")
        assert not ledger.has_entitlement("bob", "item")
        assert ledger.attempt_redeem("bob", "item", 20).status == RedemptionStatus.UNLOCKED

    def test_exact_balance_reaches_zero(self, ledger):
        ledger.grant("u", 20)

        outcome = ledger.attempt_redeem("u", "item", 20)

        assert outcome.status == RedemptionStatus.UNLOCKED
        assert ledger.get_balance("u") == 0

    @pytest.mark.parametrize("price", [0, -3, 2.5, "20", None, True])
    def test_invalid_price(self, ledger, price):
        ledger.grant("u", 50)
        with pytest.raises(ConfigurationError):
            ledger.attempt_redeem("u", "item", price)
        assert ledger.get_balance("u") == 50

    def test_price_must_match_catalog(self, ledger):
        ledger.set_prices({"item": 20})
        ledger.grant("u", 50)

        with pytest.raises(ConfigurationError):
            ledger.attempt_redeem("u", "item", 1)
        with pytest.raises(ItemNotFound):
            ledger.attempt_redeem("u", "other", 20)

        assert ledger.get_balance("u") == 50
        assert ledger.attempt_redeem("u", "item", 20).status == RedemptionStatus.UNLOCKED

    def test_empty_catalog_still_enforced(self, ledger):
        """A corpus without premium items leaves nothing redeemable."""
        ledger.set_prices({})
        ledger.grant("u", 50)

        with pytest.raises(ItemNotFound):
            ledger.attempt_redeem("u", "n1", 7)

        assert ledger.get_balance("u") == 50
        assert not ledger.has_entitlement("u", "n1")

    def test_catalog_given_at_construction(self):
        ledger = EntitlementLedger(prices={})
        ledger.grant("u", 50)

        with pytest.raises(ItemNotFound):
            ledger.attempt_redeem("u", "item", 10)

    def test_starting_balance(self):
        ledger = EntitlementLedger(starting_balance=25)

        assert ledger.get_balance("newcomer") == 25
        assert ledger.attempt_redeem("newcomer", "item", 20).balance == 5
        assert ledger.grant("other", 5) == 30

    @pytest.mark.parametrize("starting_balance", [-1, 2.5, True])
    def test_invalid_starting_balance(self, starting_balance):
        with pytest.raises(ConfigurationError):
            EntitlementLedger(starting_balance=starting_balance)

    def test_redemptions_listing(self, ledger):
        ledger.grant("u", 50)
        ledger.attempt_redeem("u", "first", 10)
        ledger.attempt_redeem("u", "second", 15)

        records = ledger.redemptions("u")

        assert [r.item_id for r in records] == ["first", "second"]
        assert [r.price for r in records] == [10, 15]
        assert all(r.redeemed_at.tzinfo is not None for r in records)
        assert ledger.redemptions("someone-else") == []

    def test_concurrent_redemptions_one_affordable(self, ledger):
        """Two different items at 20 against a balance of 20: exactly one wins."""
        ledger.grant("u", 20)
        barrier = threading.Barrier(2)

        def redeem(item_id):
            barrier.wait()
            return ledger.attempt_redeem("u", item_id, 20)

        with ThreadPoolExecutor(max_workers=2) as pool:
            outcomes = list(pool.map(redeem, ["itemX", "itemY"]))

        statuses = sorted(o.status.value for o in outcomes)
        assert statuses == ["insufficient_credits", "unlocked"]
        refused = next(o for o in outcomes if o.status == RedemptionStatus.INSUFFICIENT_CREDITS)
        assert refused.shortfall == 20
        assert ledger.get_balance("u") == 0

    def test_concurrent_storm_never_goes_negative(self, ledger):
        ledger.grant("u", 100)

        def redeem(n):
            return ledger.attempt_redeem("u", f"item-{n % 12}", 15)

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(redeem, range(48)))

        unlocked = [o for o in outcomes if o.status == RedemptionStatus.UNLOCKED]
        assert len(unlocked) == 6
        assert ledger.get_balance("u") == 10
        assert len(ledger.redemptions("u")) == 6

    def test_concurrent_replays_debit_once(self, ledger):
        ledger.grant("u", 50)

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(lambda _: ledger.attempt_redeem("u", "item", 20), range(16)))

        assert sum(o.status == RedemptionStatus.UNLOCKED for o in outcomes) == 1
        assert ledger.get_balance("u") == 30

    def test_contention_times_out(self):
        ledger = EntitlementLedger(lock_timeout=0.05, max_attempts=2)
        ledger.grant("u", 20)

        lock = ledger._lock_for("u")
        lock.acquire()
        try:
            with pytest.raises(LedgerContention) as exc_info:
                ledger.attempt_redeem("u", "item", 20)
        finally:
            lock.release()

        assert exc_info.value.retryable
        assert ledger.get_balance("u") == 20
        assert ledger.attempt_redeem("u", "item", 20).status == RedemptionStatus.UNLOCKED

    def test_other_users_do_not_contend(self):
        ledger = EntitlementLedger(lock_timeout=0.05, max_attempts=1)
        ledger.grant("busy", 20)
        ledger.grant("free", 20)

        lock = ledger._lock_for("busy")
        lock.acquire()
        try:
            outcome = ledger.attempt_redeem("free", "item", 20)
        finally:
            lock.release()

        assert outcome.status == RedemptionStatus.UNLOCKED

    def test_failed_record_write_rolls_back(self, ledger, monkeypatch):
        ledger.grant("u", 30)

        def broken_record(**kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr("note_discovery.core.ledger.RedemptionRecord", broken_record)

        with pytest.raises(RuntimeError):
            ledger.attempt_redeem("u", "item", 20)

        assert ledger.get_balance("u") == 30
        assert not ledger.has_entitlement("u", "item")

    def test_invalid_construction(self):
        with pytest.raises(ConfigurationError):
            EntitlementLedger(lock_timeout=0)
        with pytest.raises(ConfigurationError):
            EntitlementLedger(max_attempts=0)

    def test_user_id_required(self, ledger):
        with pytest.raises(ConfigurationError):
            ledger.get_balance("")
