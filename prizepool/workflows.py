import logging
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from .config import LotteryConfig
from .db.utils import epoch_seconds
from .lottery.engine import LotteryEngine
from .models import Lottery
from .randomness.coordinator import LocalRandomnessCoordinator

logger = logging.getLogger(__name__)


def create_lottery(
    session: Session,
    config: LotteryConfig,
    *,
    name: str,
    owner: str,
    started_at: Optional[int] = None,
) -> Lottery:
    """Persist a new lottery, OPEN at round 1.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    config : LotteryConfig
        Configuration copied onto the lottery. It cannot change afterwards.
    name : str
        Unique lottery name.
    owner : str
        Account allowed to withdraw fees and enable delegated withdrawal.
    started_at : Optional[int]
        Epoch seconds at which round 1 starts. Defaults to now.

    Returns
    -------
    Lottery
        The persisted lottery with its ``id`` populated.
    """
    if Lottery.get_by_name(session, name) is not None:
        raise ValueError(f"A lottery named {name!r} already exists")

    lottery = Lottery.from_config(
        config,
        name=name,
        owner=owner,
        started_at=started_at if started_at is not None else epoch_seconds(),
    )
    session.add(lottery)
    session.flush()
    logger.info(f"Created lottery {lottery.id} ({name}) owned by {owner}")
    return lottery


def run_automation_cycle(engine: LotteryEngine) -> Optional[int]:
    """One poll of the automation poller.

    Checks the upkeep predicate and performs upkeep only when it holds, so a
    poller can call this on any schedule without tripping ``UpkeepNotNeeded``.

    Returns
    -------
    Optional[int]
        The randomness request id when upkeep was performed, else ``None``.
    """
    status = engine.check_upkeep()
    if not status.upkeep_needed:
        logger.debug(
            f"Upkeep not needed: time_passed={status.time_passed} "
            f"open={status.is_open} players={status.player_count} "
            f"balance={status.balance}"
        )
        return None
    request_id = engine.perform_upkeep()
    logger.info(f"Upkeep performed, randomness request {request_id} issued")
    return request_id


def settle_round(
    coordinator: LocalRandomnessCoordinator,
    request_id: int,
    random_words: Optional[Sequence[int]] = None,
) -> list[int]:
    """Deliver randomness for ``request_id`` through the local transport.

    When ``random_words`` is omitted the coordinator draws fresh words.
    Returns the delivered words.
    """
    return coordinator.fulfill(request_id, random_words)


__all__ = ["create_lottery", "run_automation_cycle", "settle_round"]
