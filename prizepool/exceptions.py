"""Exception hierarchy for the prize-pool lottery.

Every error raised by a lottery operation derives from :class:`LotteryError`
so callers (an API layer, the automation poller) can handle them uniformly.
The operation that raised leaves the ledger untouched.
"""


class LotteryError(Exception):
    """Base class for all lottery errors."""

    pass


# ============ Entry validation ============

class EntryError(LotteryError):
    """An entry attempt was rejected by validation."""

    pass


class InsufficientEntryValue(EntryError):
    """Attached value is below the minimum entry amount."""

    def __init__(self, value: int, minimum: int):
        self.value = value
        self.minimum = minimum
        super().__init__(f"Entry value {value} is below the minimum {minimum}")


class TooManyEntries(EntryError):
    """Attached value buys more entries than a participant may hold."""

    def __init__(self, entries: int, maximum: int):
        self.entries = entries
        self.maximum = maximum
        super().__init__(f"{entries} entries exceed the per-player limit of {maximum}")


class AlreadyEntered(EntryError):
    """Participant already holds entries in the current round."""

    def __init__(self, participant: str, round_id: int):
        self.participant = participant
        self.round_id = round_id
        super().__init__(f"{participant} already entered round {round_id}")


class LotteryFull(EntryError):
    """The current round has reached its participant limit."""

    def __init__(self, max_players: int):
        self.max_players = max_players
        super().__init__(f"Round is full ({max_players} players)")


# ============ State machine ============

class StateError(LotteryError):
    """Operation is not valid in the current lottery state."""

    pass


class LotteryNotOpen(StateError):
    """The lottery is CALCULATING."""

    def __init__(self, state: str):
        self.state = state
        super().__init__(f"Lottery is not open (state={state})")


class UpkeepNotNeeded(StateError):
    """``perform_upkeep`` was called while the upkeep predicate is false."""

    def __init__(self, balance: int, player_count: int, state: str):
        self.balance = balance
        self.player_count = player_count
        self.state = state
        super().__init__(
            f"Upkeep not needed (balance={balance}, players={player_count}, state={state})"
        )


class UnknownRandomnessRequest(StateError):
    """Randomness was delivered for a request that is not outstanding."""

    def __init__(self, request_id: int):
        self.request_id = request_id
        super().__init__(f"Randomness request {request_id} is not outstanding")


# ============ Transfers ============

class TransferError(LotteryError):
    """The external recipient rejected a value transfer."""

    def __init__(self, recipient: str, amount: int):
        self.recipient = recipient
        self.amount = amount
        super().__init__(f"Transfer of {amount} to {recipient} was rejected")


class TransferFailed(TransferError):
    pass


class RefundTransferFailed(TransferError):
    pass


# ============ Price oracle ============

class OracleError(LotteryError):
    """The price reading cannot be used."""

    pass


class StalePrice(OracleError):
    def __init__(self, updated_at: int, now: int, timeout: int):
        self.updated_at = updated_at
        self.now = now
        self.timeout = timeout
        super().__init__(
            f"Price updated at {updated_at} is older than {timeout}s (now={now})"
        )


class InvalidPrice(OracleError):
    def __init__(self, price: int):
        self.price = price
        super().__init__(f"Price must be positive, got {price}")


# ============ Prize and fee ledger ============

class LedgerError(LotteryError):
    pass


class NoPrizeToWithdraw(LedgerError):
    def __init__(self, account: str):
        self.account = account
        super().__init__(f"No prize owed to {account}")


class NoFeeToWithdraw(LedgerError):
    def __init__(self):
        super().__init__("No protocol fee collected")


class DelegatedWithdrawDisabled(LedgerError):
    def __init__(self):
        super().__init__("Delegated withdrawal is not enabled")


class InvalidRecipient(LedgerError):
    def __init__(self, recipient):
        self.recipient = recipient
        super().__init__(f"Invalid recipient: {recipient!r}")


# ============ Access control ============

class AccessError(LotteryError):
    pass


class NotOwner(AccessError):
    def __init__(self, caller: str):
        self.caller = caller
        super().__init__(f"{caller} is not the lottery owner")


class ReentrantCall(LotteryError):
    """A guarded operation was re-entered during an external transfer."""

    def __init__(self, operation: str, active: str):
        self.operation = operation
        self.active = active
        super().__init__(f"Reentrant call to {operation} while {active} is running")


# ============ Invariant violations ============

class InvariantViolation(LotteryError):
    """Internal bookkeeping is inconsistent. Never expected in normal operation."""

    pass


class WinnerSelectionError(InvariantViolation):
    pass


class ArithmeticOverflow(InvariantViolation):
    pass


# Short names used in the protocol documentation.
NotOpen = LotteryNotOpen
NoPrize = NoPrizeToWithdraw
NoFee = NoFeeToWithdraw
