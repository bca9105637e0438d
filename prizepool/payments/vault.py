"""Custody of the lottery's native-unit balance.

A vault is the host the lottery holds value in. Incoming value is accepted with
:meth:`Vault.receive`; outgoing transfers go through :meth:`Vault.send`, which
reports a rejected transfer by returning ``False`` and leaves balances
untouched in that case. ``snapshot``/``restore`` let the engine undo a whole
operation when a later step fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from ..arithmetic import checked_add, checked_sub, require_uint256

logger = logging.getLogger(__name__)

RecipientHook = Callable[[int], Optional[bool]]
"""Called with the amount on every transfer to the recipient.

Returning ``False`` or raising rejects the transfer. The hook may call back into
the lottery, which is how re-entrancy is exercised.
"""


class Vault(Protocol):
    def balance(self) -> int: ...

    def receive(self, sender: str, amount: int) -> None: ...

    def send(self, recipient: str, amount: int) -> bool: ...

    def snapshot(self) -> object: ...

    def restore(self, snapshot: object) -> None: ...


@dataclass(frozen=True)
class VaultSnapshot:
    held: int
    accounts: tuple[tuple[str, int], ...]


class InMemoryVault:
    """Vault keeping its own balance and every counterparty's balance in memory."""

    def __init__(self) -> None:
        self._held = 0
        self._accounts: dict[str, int] = {}
        self._hooks: dict[str, RecipientHook] = {}

    def balance(self) -> int:
        return self._held

    def balance_of(self, account: str) -> int:
        """Net value ``account`` received from the vault minus what it paid in."""
        return self._accounts.get(account, 0)

    def register_recipient(self, account: str, hook: RecipientHook) -> None:
        self._hooks[account] = hook

    def reject_transfers_to(self, account: str) -> None:
        """Make every transfer to ``account`` fail."""
        self.register_recipient(account, lambda _amount: False)

    def clear_recipient(self, account: str) -> None:
        self._hooks.pop(account, None)

    def receive(self, sender: str, amount: int) -> None:
        require_uint256(amount, "amount")
        self._held = checked_add(self._held, amount)
        self._accounts[sender] = self._accounts.get(sender, 0) - amount

    def send(self, recipient: str, amount: int) -> bool:
        require_uint256(amount, "amount")
        if amount > self._held:
            logger.warning(
                f"Vault cannot send {amount} to {recipient}: only {self._held} held"
            )
            return False

        snapshot = self.snapshot()
        self._held = checked_sub(self._held, amount)
        self._accounts[recipient] = self._accounts.get(recipient, 0) + amount

        hook = self._hooks.get(recipient)
        if hook is None:
            return True
        try:
            accepted = hook(amount)
        except Exception as exc:
            # A raising recipient reverts its own receipt.
            logger.warning(f"Recipient {recipient} reverted a transfer of {amount}: {exc}")
            self.restore(snapshot)
            return False
        if accepted is False:
            logger.warning(f"Recipient {recipient} rejected a transfer of {amount}")
            self.restore(snapshot)
            return False
        return True

    def snapshot(self) -> VaultSnapshot:
        return VaultSnapshot(
            held=self._held, accounts=tuple(sorted(self._accounts.items()))
        )

    def restore(self, snapshot: object) -> None:
        if not isinstance(snapshot, VaultSnapshot):
            raise TypeError("snapshot must come from InMemoryVault.snapshot()")
        self._held = snapshot.held
        self._accounts = dict(snapshot.accounts)


__all__ = ["RecipientHook", "Vault", "VaultSnapshot", "InMemoryVault"]
