from __future__ import annotations

import pytest

from core.agent_registry import AgentRegistry
from core.deal_engine import DealEngine
from core.document_custody import DocumentCustody
from core.models import Commodity, DealSpec, Exclusivity
from security.envelope_crypto import EnvelopeCipher
from verification.dispatcher import VerificationDispatcher
from verification.mandate_verifier import SimulatedMandateVerifier

TEST_KEY = bytes(range(32))


@pytest.fixture
def cipher():
    """Cipher with a fixed, test-only key."""
    return EnvelopeCipher(key=TEST_KEY)


@pytest.fixture
def registry():
    return AgentRegistry()


@pytest.fixture
def engine(cipher):
    return DealEngine(cipher=cipher, invite_base_url="https://deals.example.com")


@pytest.fixture
def dispatcher(cipher):
    """Dispatcher backed by the simulated verifier with no artificial delay."""
    return VerificationDispatcher(SimulatedMandateVerifier(cipher=cipher, delay_seconds=0))


@pytest.fixture
def custody(engine, dispatcher):
    return DocumentCustody(engine=engine, dispatcher=dispatcher)


@pytest.fixture
def make_spec():
    def _make(**overrides) -> DealSpec:
        fields = dict(
            title="Gold dore, Accra",
            commodity=Commodity.GOLD,
            exclusivity=Exclusivity.STANDARD,
            quantity_kg=1000,
            price_per_kg=65,
            location="Accra, Ghana",
            details="Refinery assay pending; seller contact via mandate only.",
            chain=[],
        )
        fields.update(overrides)
        return DealSpec(**fields)
    return _make
