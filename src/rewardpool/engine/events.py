"""State-change events published after every committed ledger operation."""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Hashable, List, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolStateChanged:
    """Pool accumulator snapshot after an operation."""
    operation: str
    timestamp: int
    pool_id: Hashable
    emission_rate: int
    acc_per_share: int
    total_shares: int
    remaining_budget: int

    def to_dict(self) -> Dict[str, Any]:
        return {'event': 'pool_state_changed', **asdict(self)}


@dataclass(frozen=True)
class AccountStateChanged:
    """Account ledger snapshot after an operation."""
    operation: str
    timestamp: int
    pool_id: Hashable
    account: Hashable
    shares: int
    debt: int

    def to_dict(self) -> Dict[str, Any]:
        return {'event': 'account_state_changed', **asdict(self)}


LedgerEvent = Union[PoolStateChanged, AccountStateChanged]


class EventLog:
    """Fan-out of ledger events to subscribers, keeping a bounded history."""

    def __init__(self, max_entries: int = 10_000):
        """
        Initialize event log.

        Args:
            max_entries: Maximum number of events kept in history (0 disables history)
        """
        self.max_entries = max_entries
        self.history: List[LedgerEvent] = []
        self._subscribers: List[Callable[[LedgerEvent], None]] = []

    def subscribe(self, callback: Callable[[LedgerEvent], None]) -> Callable[[], None]:
        """Register `callback`; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, events: List[LedgerEvent]) -> None:
        """
        Record committed events and deliver them to every subscriber.

        A subscriber that raises is logged and skipped; the operation that
        produced the events has already been applied.
        """
        for event in events:
            if self.max_entries:
                self.history.append(event)
            for callback in list(self._subscribers):
                try:
                    callback(event)
                except Exception:
                    logger.exception("Event subscriber %r failed on %s", callback, event.operation)

        if self.max_entries and len(self.history) > self.max_entries:
            self.history = self.history[-self.max_entries:]
