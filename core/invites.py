# --- File: core/invites.py ---
import logging

from core.agent_registry import AgentRegistry
from core.deal_engine import DealEngine
from core.invite_links import invite_token_from_link
from core.models import Deal, DealSpec

logger = logging.getLogger(__name__)

class DealMembershipWorkflow:
    """
    Edge-side membership policy: every agent id is checked against the registry
    before the engine (which does not re-check) records it in a chain.
    """
    def __init__(self, registry: AgentRegistry, engine: DealEngine):
        self.registry = registry
        self.engine = engine

    def open_deal(self, spec: DealSpec, created_by: str) -> Deal:
        self.registry.require(spec.chain)
        return self.engine.create(spec, created_by)

    def preview(self, token: str) -> Deal:
        """Read-only lookup so an invitee can inspect the deal before joining."""
        return self.engine.resolve_by_invite_token(token)

    def join(self, token: str, agent_id: str) -> Deal:
        self.registry.get(agent_id)
        logger.debug(f"Agent {agent_id} verified; redeeming invite token.")
        return self.engine.join_by_invite_token(token, agent_id)

    def join_by_link(self, link: str, agent_id: str) -> Deal:
        return self.join(invite_token_from_link(link, self.engine.invite_link_template) or "", agent_id)
