# --- File: core/deal_engine.py ---
import logging
import threading
import uuid
from typing import Callable, Dict, List, Optional

import config
from core.errors import InvalidTransitionError, NotFoundError
from core.invite_links import build_invite_link, generate_invite_token
from core.models import Deal, DealSpec, DealStatus, StatusChange, utc_now
from core.repository import InMemoryRepository, Repository
from core.transitions import PERMISSIVE_POLICY, TransitionPolicy
from security.envelope_crypto import EnvelopeCipher

logger = logging.getLogger(__name__)


class _DealLocks:
    """One re-entrant lock per known deal id. Unknown ids never get an entry."""
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def for_deal(self, deal_id: str, exists: Callable[[str], bool]) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(deal_id)
            if lock is None:
                if not exists(deal_id):
                    raise NotFoundError("Deal", deal_id)
                lock = threading.RLock()
                self._locks[deal_id] = lock
            return lock


class DealEngine:
    """
    Owns Deal aggregates: creation, status history, chain membership and invite tokens.

    All mutations of one deal are serialized on that deal's lock and committed with a
    single repository upsert, so a failed operation never leaves a half-written deal.
    Callers always receive copies.
    """
    def __init__(
        self,
        cipher: EnvelopeCipher,
        repository: Optional[Repository[Deal]] = None,
        transition_policy: TransitionPolicy = PERMISSIVE_POLICY,
        invite_base_url: str = config.FRONTEND_URL,
        invite_link_template: str = config.INVITE_LINK_TEMPLATE
    ):
        self.cipher = cipher
        self.repository = repository if repository is not None else InMemoryRepository(name="deals")
        self.transition_policy = transition_policy
        self.invite_base_url = invite_base_url
        self.invite_link_template = invite_link_template
        self._locks = _DealLocks()
        self._index_lock = threading.Lock()
        self._invite_index: Dict[str, str] = {} # invite token -> deal id
        self._rebuild_invite_index()
        logger.info(f"Deal engine initialized. Transition policy: {'permissive' if transition_policy.is_permissive else 'restricted'}.")

    def _lock_for(self, deal_id: str) -> threading.RLock:
        return self._locks.for_deal(deal_id, lambda key: self.repository.get(key) is not None)

    def _rebuild_invite_index(self):
        for deal in self.repository.list():
            self._invite_index[deal.invite_token] = deal.id
        if self._invite_index:
            logger.info(f"Rebuilt invite index for {len(self._invite_index)} stored deals.")

    # --- Creation & Reads ---

    def create(self, spec: DealSpec, created_by: str) -> Deal:
        now = utc_now()
        token = generate_invite_token()
        deal = Deal(
            id=str(uuid.uuid4()),
            title=spec.title,
            commodity=spec.commodity,
            exclusivity=spec.exclusivity,
            quantity_kg=spec.quantity_kg,
            price_per_kg=spec.price_per_kg,
            location=spec.location,
            details=self.cipher.seal_optional(spec.details),
            chain=list(spec.chain), # stored exactly as given, duplicates included
            status=DealStatus.INITIATED,
            history=[StatusChange(status=DealStatus.INITIATED, at=now)],
            documents=[],
            invite_token=token,
            invite_link=build_invite_link(token, self.invite_base_url, self.invite_link_template),
            created_at=now,
            created_by=created_by,
        )
        with self._locks.for_deal(deal.id, lambda _: True):
            self.repository.upsert(deal.id, deal)
            with self._index_lock:
                self._invite_index[token] = deal.id
        logger.info(f"Deal '{deal.title}' created (ID: {deal.id}, commodity: {deal.commodity.value}, chain length: {len(deal.chain)}) by {created_by}")
        return deal.model_copy(deep=True)

    def get(self, deal_id: str) -> Deal:
        deal = self.repository.get(deal_id)
        if deal is None:
            raise NotFoundError("Deal", deal_id)
        return deal

    def list(self) -> List[Deal]:
        return self.repository.list()

    def reveal_details(self, deal_id: str) -> Optional[str]:
        """Decrypts the sealed free-text details, or returns None when the deal has none."""
        deal = self.get(deal_id)
        if deal.details is None:
            return None
        return self.cipher.open_envelope(deal.details).decode('utf-8')

    # --- Mutations ---

    def update(self, deal_id: str, mutator: Callable[[Deal], None]) -> Deal:
        """
        Applies `mutator` to a working copy of the deal under the deal's lock and commits it.
        If the mutator raises, nothing is stored.
        """
        with self._lock_for(deal_id):
            deal = self.get(deal_id)
            mutator(deal)
            self.repository.upsert(deal_id, deal)
            return deal.model_copy(deep=True)

    def set_status(self, deal_id: str, status: DealStatus) -> Deal:
        """Unconditionally records a status change; repeats and backward moves are logged like any other."""
        status = DealStatus(status)

        def _apply(deal: Deal):
            deal.status = status
            deal.history.append(StatusChange(status=status, at=utc_now()))

        deal = self.update(deal_id, _apply)
        logger.info(f"Deal {deal_id} status -> '{status.value}' (history length: {len(deal.history)})")
        return deal

    def transition_status(self, deal_id: str, status: DealStatus) -> Deal:
        """Status change gated by the configured transition policy."""
        status = DealStatus(status)
        with self._lock_for(deal_id):
            current = self.get(deal_id).status
            if not self.transition_policy.allows(current, status):
                logger.warning(f"Deal {deal_id}: refused status transition '{current.value}' -> '{status.value}'.")
                raise InvalidTransitionError(current.value, status.value)
            return self.set_status(deal_id, status)

    # --- Invite Tokens ---

    def _deal_id_for_token(self, token: str) -> str:
        with self._index_lock:
            deal_id = self._invite_index.get(token)
        if deal_id is None:
            raise NotFoundError("Invite token", token, "Invalid invite code")
        return deal_id

    def resolve_by_invite_token(self, token: str) -> Deal:
        return self.get(self._deal_id_for_token(token))

    def join_by_invite_token(self, token: str, agent_id: str) -> Deal:
        """
        Appends the agent to the chain of the deal the token belongs to; a no-op if already present.
        Agent existence and deal stage are not checked here.
        """
        deal_id = self._deal_id_for_token(token)
        joined = []

        def _apply(deal: Deal):
            if agent_id not in deal.chain:
                deal.chain.append(agent_id)
                joined.append(agent_id)

        deal = self.update(deal_id, _apply)
        if joined:
            logger.info(f"Agent {agent_id} joined deal {deal_id} via invite (chain length: {len(deal.chain)})")
        else:
            logger.debug(f"Agent {agent_id} already in chain of deal {deal_id}; join is a no-op.")
        return deal
