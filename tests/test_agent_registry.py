import pytest

from core.errors import NotFoundError


def test_register_and_get_round_trip(registry):
    seller = registry.register("Seller")
    broker = registry.register("Broker", parent_id=seller.id)

    assert registry.get(seller.id) == seller
    assert registry.get(broker.id) == broker
    assert broker.parent_agent_id == seller.id
    assert seller.parent_agent_id is None
    assert seller.id != broker.id


def test_get_unknown_agent_raises(registry):
    with pytest.raises(NotFoundError) as exc_info:
        registry.get("no-such-agent")
    assert exc_info.value.entity == "Agent"
    assert exc_info.value.identifier == "no-such-agent"


def test_parent_reference_is_not_validated(registry):
    orphan = registry.register("Orphan", parent_id="ghost-parent")
    assert registry.get(orphan.id).parent_agent_id == "ghost-parent"


def test_list_is_insertion_ordered_snapshot(registry):
    names = ["A", "B", "C", "D"]
    for name in names:
        registry.register(name)
    snapshot = registry.list()
    assert [a.name for a in snapshot] == names

    registry.register("E")
    assert len(snapshot) == 4
    assert len(registry.list()) == 5


def test_require_reports_first_missing_agent(registry):
    known = registry.register("Known")
    registry.require([known.id])
    with pytest.raises(NotFoundError) as exc_info:
        registry.require([known.id, "missing-1", "missing-2"])
    assert exc_info.value.identifier == "missing-1"
