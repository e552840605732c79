"""Value-transfer resources backing stake and reward amounts.

The ledger only needs to move value in and out of pool custody and to read a
holder's balance. `InMemoryToken` is a reference implementation with plain
balance bookkeeping and optional allowances.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, Hashable, Protocol, Tuple

from .errors import InsufficientExternalBalance, InvalidAmount, TransferRejected

logger = logging.getLogger(__name__)


class ValueTransferResource(Protocol):
    """Capability to move one fungible resource between holders.

    Each transfer is atomic: it either moves the full amount or raises
    TransferRejected without changing any balance.
    """

    def transfer_into(self, source: Hashable, custody: Hashable, amount: int) -> None:
        ...

    def transfer_out_of(self, custody: Hashable, destination: Hashable, amount: int) -> None:
        ...

    def balance_of(self, holder: Hashable) -> int:
        ...


class InMemoryToken:
    """Fungible token held in a dictionary of balances."""

    def __init__(self, symbol: str, require_allowance: bool = False):
        """
        Initialize token.

        Args:
            symbol: Display symbol used in errors and logs
            require_allowance: If True, transfer_into requires the source to have
                approved the custody holder for at least the amount
        """
        self.symbol = symbol
        self.require_allowance = require_allowance
        self._balances: Dict[Hashable, int] = defaultdict(int)
        self._allowances: Dict[Tuple[Hashable, Hashable], int] = defaultdict(int)
        self.total_supply = 0

    def __repr__(self) -> str:
        return f"InMemoryToken({self.symbol!r})"

    def mint(self, holder: Hashable, amount: int) -> None:
        """Create `amount` new units for `holder`."""
        if amount < 0:
            raise InvalidAmount(f"Cannot mint negative amount {amount}")
        self._balances[holder] += amount
        self.total_supply += amount

    def approve(self, owner: Hashable, spender: Hashable, amount: int) -> None:
        """Allow `spender` to pull up to `amount` from `owner`."""
        if amount < 0:
            raise InvalidAmount(f"Cannot approve negative amount {amount}")
        self._allowances[(owner, spender)] = amount

    def allowance(self, owner: Hashable, spender: Hashable) -> int:
        return self._allowances.get((owner, spender), 0)

    def balance_of(self, holder: Hashable) -> int:
        return self._balances.get(holder, 0)

    def transfer(self, source: Hashable, destination: Hashable, amount: int) -> None:
        """Move `amount` from `source` to `destination`, all or nothing."""
        if amount < 0:
            raise TransferRejected(f"Cannot transfer negative amount {amount} of {self.symbol}")
        available = self.balance_of(source)
        if available < amount:
            raise InsufficientExternalBalance(source, amount, available, self.symbol)
        if amount == 0:
            return
        self._balances[source] -= amount
        self._balances[destination] += amount
        logger.debug("%s: %r -> %r amount=%d", self.symbol, source, destination, amount)

    def transfer_into(self, source: Hashable, custody: Hashable, amount: int) -> None:
        if self.require_allowance:
            allowed = self.allowance(source, custody)
            if allowed < amount:
                raise InsufficientExternalBalance(source, amount, allowed, f"{self.symbol} allowance")
        self.transfer(source, custody, amount)
        if self.require_allowance:
            self._allowances[(source, custody)] -= amount

    def transfer_out_of(self, custody: Hashable, destination: Hashable, amount: int) -> None:
        self.transfer(custody, destination, amount)

    def holders(self) -> Dict[Any, int]:
        """Return a copy of all non-zero balances."""
        return {holder: balance for holder, balance in self._balances.items() if balance}
