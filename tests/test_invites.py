import pytest

from core.deal_engine import DealEngine
from core.errors import NotFoundError
from core.invite_links import build_invite_link, generate_invite_token, invite_token_from_link
from core.invites import DealMembershipWorkflow


@pytest.fixture
def workflow(registry, engine):
    return DealMembershipWorkflow(registry=registry, engine=engine)


def test_tokens_are_128_bit_and_unique():
    tokens = {generate_invite_token() for _ in range(1000)}
    assert len(tokens) == 1000
    assert all(len(t) == 32 for t in tokens)


def test_build_and_parse_link():
    link = build_invite_link("abc123", base_url="https://app.example.com/")
    assert link == "https://app.example.com/join-deal/abc123"
    assert invite_token_from_link(link) == "abc123"
    assert invite_token_from_link(link + "?ref=mail") == "abc123"
    assert invite_token_from_link("") is None


def test_custom_link_template():
    link = build_invite_link("tok", base_url="https://x.io", template="{base_url}/i/{token}/accept")
    assert link == "https://x.io/i/tok/accept"


def test_open_deal_requires_registered_chain(workflow, registry, make_spec):
    seller = registry.register("Seller")
    with pytest.raises(NotFoundError):
        workflow.open_deal(make_spec(chain=[seller.id, "unregistered"]), created_by="u")
    assert workflow.engine.list() == []

    deal = workflow.open_deal(make_spec(chain=[seller.id]), created_by="u")
    assert deal.chain == [seller.id]


def test_join_requires_registered_agent(workflow, registry, make_spec):
    deal = workflow.open_deal(make_spec(), created_by="u")
    with pytest.raises(NotFoundError):
        workflow.join(deal.invite_token, "unregistered")
    assert workflow.engine.get(deal.id).chain == []


def test_preview_then_join_by_link(workflow, registry, make_spec):
    seller = registry.register("Seller")
    buyer = registry.register("Buyer")
    deal = workflow.open_deal(make_spec(chain=[seller.id]), created_by="u")

    assert workflow.preview(deal.invite_token).id == deal.id
    joined = workflow.join_by_link(deal.invite_link, buyer.id)
    assert joined.chain == [seller.id, buyer.id]


def test_join_by_malformed_link(workflow, registry):
    agent = registry.register("A")
    with pytest.raises(NotFoundError):
        workflow.join_by_link("", agent.id)


@pytest.mark.parametrize("template, link", [
    ("{base_url}/join-deal/{token}", "https://x.io/join-deal/tok123?ref=mail"),
    ("{base_url}/join?code={token}", "https://x.io/join?code=tok123&ref=mail"),
    ("{base_url}/i/{token}/accept", "https://x.io/i/tok123/accept"),
])
def test_token_parsed_according_to_template(template, link):
    assert invite_token_from_link(link, template) == "tok123"


def test_join_by_link_with_query_template(registry, cipher, make_spec):
    engine = DealEngine(cipher=cipher, invite_base_url="https://x.io", invite_link_template="{base_url}/join?code={token}")
    workflow = DealMembershipWorkflow(registry=registry, engine=engine)
    buyer = registry.register("Buyer")
    deal = workflow.open_deal(make_spec(), created_by="u")
    assert deal.invite_link == f"https://x.io/join?code={deal.invite_token}"

    joined = workflow.join_by_link(deal.invite_link, buyer.id)
    assert joined.chain == [buyer.id]
