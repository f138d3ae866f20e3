"""Integration tests for the stored markup configuration."""

from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from shipdesk.core.constants import GLOBAL_CARRIER
from shipdesk.core.errors import ConflictError, NotFoundError
from shipdesk.modules.markup.constants import MarkupCategory
from shipdesk.modules.markup.repos import MarkupRuleRepository
from shipdesk.modules.markup.schemas import MarkupRuleCreate, MarkupRuleUpdate, QuoteRequest
from shipdesk.modules.markup.services import MarkupService


pytestmark = pytest.mark.integration


class TestGetMarkupRule:
    """Tests for rule lookup with the global fallback."""

    async def test_carrier_rule_wins(self, db: AsyncSession, roles):
        rule = await MarkupRuleRepository(db).get_markup_rule(MarkupCategory.CARRIER, "UPS")

        assert rule.carrier == "UPS"
        assert rule.markup_type == "Percentage"
        assert rule.markup_value == Decimal("10")

    async def test_falls_back_to_global_rule(self, db: AsyncSession, roles):
        rule = await MarkupRuleRepository(db).get_markup_rule(MarkupCategory.INSURANCE, "UPS")

        assert rule.carrier == GLOBAL_CARRIER
        assert rule.markup_value == Decimal("1.25")

    async def test_no_rule_and_no_global(self, db: AsyncSession, roles):
        repo = MarkupRuleRepository(db)

        assert await repo.get_markup_rule(MarkupCategory.PICKUP, "DHL") is None

        with pytest.raises(NotFoundError):
            await MarkupService(db).get_markup_rule(MarkupCategory.PICKUP, "DHL")

    async def test_list_by_category(self, db: AsyncSession, roles):
        rules = await MarkupRuleRepository(db).list_all(MarkupCategory.PICKUP)

        assert [r.carrier for r in rules] == ["Canada Post", "FedEx", "UPS"]


class TestRuleUpdates:
    """Tests for rule changes reaching the calculator."""

    async def test_update_changes_quotes(self, db: AsyncSession, roles):
        service = MarkupService(db)
        rule = await service.get_markup_rule(MarkupCategory.CARRIER, "UPS")

        await service.update_rule(rule.id, MarkupRuleUpdate(markup_value=Decimal(20)))
        breakdown, *_ = await service.quote(QuoteRequest(carrier="UPS", base_fee=Decimal(100)))

        assert breakdown.total_fee == Decimal("120.00")

    async def test_duplicate_slot_conflicts(self, db: AsyncSession, roles):
        with pytest.raises(ConflictError):
            await MarkupService(db).create_rule(
                MarkupRuleCreate(
                    category=MarkupCategory.CARRIER,
                    carrier="UPS",
                    base_currency="CAD",
                    conversion_rate=Decimal(1),
                    markup_type="Flat",
                    markup_value=Decimal(1),
                )
            )

    async def test_new_global_rule_prices_unknown_carrier(self, db: AsyncSession, roles):
        service = MarkupService(db)
        await service.create_rule(
            MarkupRuleCreate(
                category=MarkupCategory.CARRIER,
                carrier=GLOBAL_CARRIER,
                base_currency="USD",
                conversion_rate=Decimal("1.35"),
                markup_type="Flat",
                markup_value=Decimal("3.5"),
            )
        )

        breakdown, carrier_rule, _, _ = await service.quote(
            QuoteRequest(carrier="Purolator", base_fee=Decimal(10))
        )

        assert carrier_rule.carrier == GLOBAL_CARRIER
        assert breakdown.total_fee == Decimal("17.00")

    async def test_quote_with_every_category(self, db: AsyncSession, roles):
        """UPS: 100 +10%, insurance 1.25% of 500, pickup 20 +5%."""
        breakdown, _, pickup_rule, insurance_rule = await MarkupService(db).quote(
            QuoteRequest(
                carrier="UPS",
                base_fee=Decimal(100),
                declared_value=Decimal(500),
                pickup_base_fee=Decimal(20),
            )
        )

        assert breakdown.carrier_fee == Decimal("110.00")
        assert breakdown.insurance_fee == Decimal("6.25")
        assert breakdown.pickup_fee == Decimal("21.00")
        assert breakdown.total_fee == Decimal("137.25")
        assert pickup_rule.carrier == "UPS"
        assert insurance_rule.carrier == GLOBAL_CARRIER
