# --- File: core/transitions.py ---
from typing import Dict, FrozenSet, Iterable, Mapping, Optional

from core.models import DealStatus

class TransitionPolicy:
    """
    Table of allowed `from -> {to...}` status edges, checked before a status change.
    A policy built without a table allows every move, including repeats and moves backwards.
    """
    def __init__(self, allowed: Optional[Mapping[DealStatus, Iterable[DealStatus]]] = None):
        self._allowed: Optional[Dict[DealStatus, FrozenSet[DealStatus]]] = None
        if allowed is not None:
            self._allowed = {src: frozenset(dsts) for src, dsts in allowed.items()}

    @property
    def is_permissive(self) -> bool:
        return self._allowed is None

    def allows(self, current: DealStatus, requested: DealStatus) -> bool:
        if self._allowed is None:
            return True
        return requested in self._allowed.get(current, frozenset())


PERMISSIVE_POLICY = TransitionPolicy()

_PIPELINE = [
    DealStatus.INITIATED, DealStatus.KYC, DealStatus.CONTRACTED, DealStatus.INSPECTION,
    DealStatus.PAYMENT, DealStatus.SHIPPED, DealStatus.CLOSED,
]

# Each open stage may advance one step or be cancelled; closed and cancelled deals are final.
PIPELINE_POLICY = TransitionPolicy({
    **{
        stage: {_PIPELINE[i + 1], DealStatus.CANCELLED}
        for i, stage in enumerate(_PIPELINE[:-1])
    },
    DealStatus.CLOSED: set(),
    DealStatus.CANCELLED: set(),
})
