"""Credit balances and premium entitlements."""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

import structlog
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..models.content import (
    CreditAccount,
    RedemptionOutcome,
    RedemptionRecord,
    RedemptionStatus,
)
from .errors import ConfigurationError, InsufficientCredits, ItemNotFound, LedgerContention

logger = structlog.get_logger(__name__)


def _log_contention_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Ledger contention, retrying",
        attempt=retry_state.attempt_number,
        user_id=getattr(exc, "user_id", None),
    )


class EntitlementLedger:
    """
    Owns every credit balance and redemption record.

    Each account has its own lock, so the read-compare-debit-record sequence
    of a redemption is atomic per user while different users never contend.
    Lock waits are bounded by ``lock_timeout``; a timed out wait is retried
    with exponential backoff up to ``max_attempts`` times before
    LedgerContention reaches the caller.
    """

    def __init__(
        self,
        lock_timeout: float = 2.0,
        max_attempts: int = 3,
        prices: Optional[Mapping[str, int]] = None,
        starting_balance: int = 0,
    ) -> None:
        """
        Initialize an empty ledger.

        Args:
            lock_timeout: Seconds to wait for an account lock
            max_attempts: Lock acquisitions tried before giving up
            prices: Item id -> credit price catalog used to verify redemptions;
                None accepts any positive price
            starting_balance: Credits a new account opens with
        """
        if lock_timeout <= 0:
            raise ConfigurationError("lock_timeout must be positive")
        if max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1")
        if isinstance(starting_balance, bool) or not isinstance(starting_balance, int) or starting_balance < 0:
            raise ConfigurationError("starting_balance must be a non-negative integer")

        self.lock_timeout = lock_timeout
        self.max_attempts = max_attempts
        self.starting_balance = starting_balance
        self._accounts: Dict[str, CreditAccount] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._redemptions: Dict[Tuple[str, str], RedemptionRecord] = {}
        self._registry_lock = threading.Lock()
        self._prices: Optional[Dict[str, int]] = dict(prices) if prices is not None else None

    def set_prices(self, prices: Mapping[str, int]) -> None:
        """
        Replace the price catalog (called whenever the corpus is rebuilt).

        Once set, only listed items can be redeemed, even if the catalog is empty.
        """
        self._prices = dict(prices)

    def get_balance(self, user_id: str) -> int:
        """
        Current balance of a user.

        Unknown users get an account opened with ``starting_balance``.
        """
        return self._account(user_id).balance

    def attempt_redeem(self, user_id: str, item_id: str, price: int) -> RedemptionOutcome:
        """
        Unlock a premium item for a user, debiting its price at most once.

        Args:
            user_id: Caller identity
            item_id: Premium item to unlock
            price: The item's credit price

        Returns:
            RedemptionOutcome with status unlocked, already_unlocked or insufficient_credits

        Raises:
            ConfigurationError: if the price is not a positive integer or does not match the catalog
            ItemNotFound: if a price catalog is set and does not list the item
            LedgerContention: if the account stayed locked through every retry
        """
        if isinstance(price, bool) or not isinstance(price, int) or price <= 0:
            raise ConfigurationError(f"price must be a positive integer, got {price!r}")

        return self._retrying(self._redeem, user_id, item_id, price)

    def grant(self, user_id: str, amount: int) -> int:
        """
        Add credits to an account.

        Returns:
            The new balance
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ConfigurationError(f"amount must be a positive integer, got {amount!r}")

        return self._retrying(self._grant, user_id, amount)

    def has_entitlement(self, user_id: str, item_id: str) -> bool:
        return (user_id, item_id) in self._redemptions

    def redemptions(self, user_id: str) -> List[RedemptionRecord]:
        """Records for one user, oldest first."""
        records = [r for (owner, _), r in list(self._redemptions.items()) if owner == user_id]
        return sorted(records, key=lambda r: r.redeemed_at)

    def get_stats(self) -> Dict[str, int]:
        """Get ledger statistics."""
        return {
            "accounts": len(self._accounts),
            "redemptions": len(self._redemptions),
        }

    def _retrying(self, fn, *args):
        retryer = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=0.05, max=1.0),
            retry=retry_if_exception_type(LedgerContention),
            before_sleep=_log_contention_retry,
            reraise=True,
        )
        return retryer(fn, *args)

    def _redeem(self, user_id: str, item_id: str, price: int) -> RedemptionOutcome:
        with self._locked(user_id) as account:
            if (user_id, item_id) in self._redemptions:
                logger.info("Redemption replayed", user_id=user_id, item_id=item_id)
                return RedemptionOutcome(
                    status=RedemptionStatus.ALREADY_UNLOCKED,
                    user_id=user_id,
                    item_id=item_id,
                    balance=account.balance,
                )

            self._check_price(item_id, price)

            try:
                self._debit(account, item_id, price)
            except InsufficientCredits as e:
                logger.info(
                    "Redemption refused",
                    user_id=user_id,
                    item_id=item_id,
                    price=price,
                    shortfall=e.shortfall,
                )
                return RedemptionOutcome(
                    status=RedemptionStatus.INSUFFICIENT_CREDITS,
                    user_id=user_id,
                    item_id=item_id,
                    balance=account.balance,
                    shortfall=e.shortfall,
                )

            logger.info(
                "Item unlocked",
                user_id=user_id,
                item_id=item_id,
                price=price,
                balance=account.balance,
            )
            return RedemptionOutcome(
                status=RedemptionStatus.UNLOCKED,
                user_id=user_id,
                item_id=item_id,
                balance=account.balance,
            )

    def _debit(self, account: CreditAccount, item_id: str, price: int) -> None:
        """Debit and record; caller holds the account lock."""
        if account.balance < price:
            raise InsufficientCredits(shortfall=price - account.balance, balance=account.balance)

        account.balance -= price
        try:
            record = RedemptionRecord(user_id=account.user_id, item_id=item_id, price=price)
            self._redemptions[(account.user_id, item_id)] = record
        except Exception:
            account.balance += price
            logger.error("Redemption rolled back", user_id=account.user_id, item_id=item_id, exc_info=True)
            raise

    def _grant(self, user_id: str, amount: int) -> int:
        with self._locked(user_id) as account:
            account.balance += amount
            logger.info("Credits granted", user_id=user_id, amount=amount, balance=account.balance)
            return account.balance

    def _check_price(self, item_id: str, price: int) -> None:
        if self._prices is None:
            return
        if item_id not in self._prices:
            raise ItemNotFound(item_id)
        if self._prices[item_id] != price:
            raise ConfigurationError(
                f"price {price} does not match the credit price of {item_id}"
            )

    def _account(self, user_id: str) -> CreditAccount:
        if not user_id:
            raise ConfigurationError("user id is required")
        account = self._accounts.get(user_id)
        if account is None:
            with self._registry_lock:
                account = self._accounts.setdefault(
                    user_id, CreditAccount(user_id=user_id, balance=self.starting_balance)
                )
        return account

    def _lock_for(self, user_id: str) -> threading.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            with self._registry_lock:
                lock = self._locks.setdefault(user_id, threading.Lock())
        return lock

    @contextmanager
    def _locked(self, user_id: str) -> Iterator[CreditAccount]:
        account = self._account(user_id)
        lock = self._lock_for(user_id)
        if not lock.acquire(timeout=self.lock_timeout):
            raise LedgerContention(user_id, self.lock_timeout)
        try:
            yield account
        finally:
            lock.release()
