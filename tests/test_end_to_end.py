import pytest

from core.invite_links import invite_token_from_link
from core.invites import DealMembershipWorkflow
from core.models import DealStatus, DocumentCategory, DocumentUpload, VerificationStatus


@pytest.mark.asyncio
async def test_deal_lifecycle_with_mandate_verification(registry, engine, custody, dispatcher, make_spec):
    seller = registry.register("Seller")
    broker = registry.register("Broker", parent_id=seller.id)

    deal = engine.create(make_spec(chain=[seller.id, broker.id], quantity_kg=1000, price_per_kg=65), created_by="seller-user")
    assert deal.status == DealStatus.INITIATED
    assert len(deal.history) == 1

    deal = engine.set_status(deal.id, DealStatus.CONTRACTED)
    assert len(deal.history) == 2
    assert deal.history[1].status == DealStatus.CONTRACTED

    deal = custody.attach(deal.id, DocumentUpload(
        name="seller-mandate.pdf",
        media_type="application/pdf",
        category=DocumentCategory.MANDATE,
        content=b"Sales mandate signed by Jane Doe for Seller.",
        uploaded_by="seller-user",
    ))
    document = deal.documents[-1]
    assert document.verification_status == VerificationStatus.PENDING

    await dispatcher.drain()
    assert custody.get_document(deal.id, document.id).verification_status == VerificationStatus.REDACTED


def test_invite_preview_and_join(registry, engine, make_spec):
    workflow = DealMembershipWorkflow(registry=registry, engine=engine)
    seller = registry.register("Seller")
    broker = registry.register("Broker", parent_id=seller.id)
    buyer = registry.register("Buyer")

    deal = workflow.open_deal(make_spec(chain=[seller.id, broker.id]), created_by="u")
    token = invite_token_from_link(deal.invite_link)

    assert workflow.preview(token).id == deal.id
    joined = workflow.join(token, buyer.id)
    assert len(joined.chain) == len(deal.chain) + 1
    assert joined.chain[-1] == buyer.id
