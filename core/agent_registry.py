# --- File: core/agent_registry.py ---
import logging
import uuid
from typing import Iterable, List, Optional

from core.errors import NotFoundError
from core.models import Agent
from core.repository import InMemoryRepository, Repository

logger = logging.getLogger(__name__)

class AgentRegistry:
    """
    Append-only registry of agent identities.
    Parent references are stored as given; they are not checked and cycles are not detected.
    """
    def __init__(self, repository: Optional[Repository[Agent]] = None):
        self.repository = repository if repository is not None else InMemoryRepository(name="agents")

    def register(self, name: str, parent_id: Optional[str] = None) -> Agent:
        agent = Agent(id=str(uuid.uuid4()), name=name, parent_agent_id=parent_id)
        self.repository.upsert(agent.id, agent)
        logger.info(f"Registered agent '{agent.name}' (ID: {agent.id}, parent: {parent_id or 'none'})")
        return agent

    def get(self, agent_id: str) -> Agent:
        agent = self.repository.get(agent_id)
        if agent is None:
            raise NotFoundError("Agent", agent_id)
        return agent

    def list(self) -> List[Agent]:
        return self.repository.list()

    def require(self, agent_ids: Iterable[str]) -> None:
        """Raises NotFoundError for the first id that does not resolve."""
        for agent_id in agent_ids:
            self.get(agent_id)
