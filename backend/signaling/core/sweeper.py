"""
Idle sweep for calls nobody answered.

The coordinator never expires calls on its own. Deployments that want a
deadline run this sweep periodically (see ``sweep_calls.py``); it ends each
stale call through the normal ``end`` operation on behalf of the caller.
"""
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from signaling.core.coordinator import SignalingCoordinator
from signaling.core.errors import CallNotFound, InvalidTransition
from signaling.utils.logger import get_logger

logger = get_logger(__name__)


def sweep_unanswered_calls(
    db: Session,
    older_than: timedelta,
    now: Optional[datetime] = None,
    coordinator: Optional[SignalingCoordinator] = None,
) -> List[int]:
    """End every call still in ``initiated`` that was created before ``now - older_than``."""
    coordinator = coordinator or SignalingCoordinator(db)
    cutoff = (now or datetime.utcnow()) - older_than

    stale = [(call.id, call.caller) for call in coordinator.store.find_stale(cutoff)]

    ended = []
    for call_id, caller in stale:
        try:
            coordinator.end(caller, call_id, unanswered_only=True)
        except (CallNotFound, InvalidTransition) as exc:
            # A participant answered or ended it between the scan and our end
            logger.info("Call %s changed during sweep, skipping: %s", call_id, exc)
            continue
        ended.append(call_id)

    if ended:
        logger.info("Swept %d unanswered call(s): %s", len(ended), ended)
    return ended
