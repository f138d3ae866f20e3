"""Markup rule management and fee quoting."""

from decimal import Decimal
from typing import Annotated, Any

import structlog
from fastapi import Depends

from shipdesk.api.dependencies import DBSession
from shipdesk.config import settings
from shipdesk.core.errors import ConflictError, NotFoundError, ValidationError
from shipdesk.modules.markup.calculator import (
    CarrierMarkup,
    FeeBreakdown,
    FeeInputs,
    compute_total_fee,
)
from shipdesk.modules.markup.constants import (
    PERCENTAGE_ONLY_CATEGORIES,
    MarkupCategory,
    MarkupType,
)
from shipdesk.modules.markup.models import MarkupRule
from shipdesk.modules.markup.repos import MarkupRuleRepository
from shipdesk.modules.markup.schemas import (
    MarkupRuleCreate,
    MarkupRuleUpdate,
    QuoteRequest,
    SimulationRequest,
)


logger = structlog.get_logger()


def validate_rule_values(
    category: MarkupCategory,
    conversion_rate: Decimal,
    markup_type: str,
    markup_value: Decimal,
) -> None:
    """Apply the rule invariants before a rule is stored.

    Raises:
        ValidationError: Listing each offending field
    """
    errors: list[dict[str, Any]] = []

    if not conversion_rate.is_finite() or conversion_rate <= 0:
        errors.append({"field": "conversion_rate", "message": "Must be greater than 0"})
    if not markup_value.is_finite() or markup_value < 0:
        errors.append({"field": "markup_value", "message": "Must not be negative"})

    valid_types = {t.value for t in MarkupType}
    if markup_type not in valid_types:
        errors.append(
            {"field": "markup_type", "message": f"Must be one of: {', '.join(sorted(valid_types))}"}
        )
    elif category in PERCENTAGE_ONLY_CATEGORIES and markup_type != MarkupType.PERCENTAGE:
        errors.append(
            {"field": "markup_type", "message": f"{category.value} rules must be Percentage"}
        )

    if errors:
        raise ValidationError("Invalid markup rule", errors=errors)


class MarkupService:
    """Service for markup configuration and fee calculation."""

    def __init__(self, db: DBSession) -> None:
        self.db = db
        self.repo = MarkupRuleRepository(db)

    # ============================================================
    # Rule configuration
    # ============================================================

    async def get_rule(self, rule_id: int) -> MarkupRule:
        """Get a rule by id.

        Raises:
            NotFoundError: If rule not found
        """
        rule = await self.repo.get_by_id(rule_id)
        if not rule:
            raise NotFoundError(
                "Markup rule not found",
                resource="markup_rule",
                resource_id=str(rule_id),
            )
        return rule

    async def get_markup_rule(self, category: MarkupCategory, carrier: str) -> MarkupRule:
        """Get the rule that prices a carrier, falling back to the global rule.

        Raises:
            NotFoundError: If neither a carrier nor a global rule exists
        """
        rule = await self.repo.get_markup_rule(category, carrier)
        if not rule:
            raise NotFoundError(
                f"No {category.value} markup rule for carrier",
                resource="markup_rule",
                resource_id=f"{category.value}:{carrier}",
            )
        return rule

    async def list_rules(self, category: MarkupCategory | None = None) -> list[MarkupRule]:
        return await self.repo.list_all(category)

    async def get_config(self) -> dict[MarkupCategory, list[MarkupRule]]:
        """All rules grouped by category."""
        grouped: dict[MarkupCategory, list[MarkupRule]] = {c: [] for c in MarkupCategory}
        for rule in await self.repo.list_all():
            grouped[MarkupCategory(rule.category)].append(rule)
        return grouped

    async def _ensure_slot_free(
        self, category: MarkupCategory, carrier: str, exclude_id: int | None = None
    ) -> None:
        existing = await self.repo.get_exact(category, carrier)
        if existing and existing.id != exclude_id:
            raise ConflictError(
                "A rule already exists for this carrier and category",
                error_code="markup_rule_exists",
                details={"category": category.value, "carrier": carrier},
            )

    async def create_rule(self, data: MarkupRuleCreate) -> MarkupRule:
        """Store a new rule.

        Raises:
            ValidationError: If the rule breaks a rule invariant
            ConflictError: If the category already has a rule for the carrier
        """
        validate_rule_values(
            data.category, data.conversion_rate, data.markup_type, data.markup_value
        )
        await self._ensure_slot_free(data.category, data.carrier)

        rule = await self.repo.create(
            MarkupRule(
                category=data.category.value,
                carrier=data.carrier,
                base_currency=data.base_currency,
                conversion_rate=data.conversion_rate,
                markup_type=data.markup_type,
                markup_value=data.markup_value,
            )
        )
        logger.info(
            "markup_rule_created",
            rule_id=rule.id,
            category=rule.category,
            carrier=rule.carrier,
        )
        return rule

    async def update_rule(self, rule_id: int, data: MarkupRuleUpdate) -> MarkupRule:
        """Apply a partial update, validated against the merged rule.

        Raises:
            NotFoundError: If rule not found
            ValidationError: If the merged rule breaks a rule invariant
            ConflictError: If moved onto a carrier that already has a rule
        """
        rule = await self.get_rule(rule_id)
        category = MarkupCategory(rule.category)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        validate_rule_values(
            category,
            update_data.get("conversion_rate", Decimal(rule.conversion_rate)),
            update_data.get("markup_type", rule.markup_type),
            update_data.get("markup_value", Decimal(rule.markup_value)),
        )
        if update_data.get("carrier", rule.carrier) != rule.carrier:
            await self._ensure_slot_free(category, update_data["carrier"], exclude_id=rule.id)

        for field, value in update_data.items():
            setattr(rule, field, value)

        rule = await self.repo.update(rule)
        logger.info("markup_rule_updated", rule_id=rule.id, fields=sorted(update_data))
        return rule

    async def delete_rule(self, rule_id: int) -> None:
        """Delete a rule.

        Raises:
            NotFoundError: If rule not found
        """
        rule = await self.get_rule(rule_id)
        await self.repo.delete(rule)
        logger.info("markup_rule_deleted", rule_id=rule_id)

    # ============================================================
    # Fee calculation
    # ============================================================

    def simulate(self, data: SimulationRequest) -> FeeBreakdown:
        """Run the calculator on raw inputs.

        Raises:
            ValidationError: If any input is invalid
        """
        breakdown = compute_total_fee(
            FeeInputs(
                base_fee=data.base_fee,
                conversion_rate=data.conversion_rate,
                carrier_markup=CarrierMarkup(type=data.markup_type, value=data.markup_value),
                declared_value=data.declared_value,
                insurance_markup_percentage=data.insurance_markup_percentage,
                pickup_base_fee=data.pickup_base_fee,
                pickup_markup_percentage=data.pickup_markup_percentage,
            ),
            currency=settings.settlement_currency,
        )
        logger.info("fee_simulated", total_fee=str(breakdown.total_fee))
        return breakdown

    async def quote(
        self, data: QuoteRequest
    ) -> tuple[FeeBreakdown, MarkupRule, MarkupRule | None, MarkupRule | None]:
        """Price a carrier quote with the stored rules.

        The carrier rule supplies the conversion rate used for the base fee
        and the declared value. The pickup base fee is converted with the
        pickup rule's own rate. Pickup and insurance rules are optional when
        their amount is zero.

        Returns:
            Tuple of (breakdown, carrier_rule, pickup_rule, insurance_rule)

        Raises:
            NotFoundError: If a required rule is missing
            ValidationError: If any amount is invalid
        """
        carrier_rule = await self.get_markup_rule(MarkupCategory.CARRIER, data.carrier)

        pickup_rule = None
        pickup_base = Decimal(0)
        pickup_pct = Decimal(0)
        if data.pickup_base_fee:
            pickup_rule = await self.get_markup_rule(MarkupCategory.PICKUP, data.carrier)
            pickup_base = data.pickup_base_fee * Decimal(pickup_rule.conversion_rate)
            pickup_pct = Decimal(pickup_rule.markup_value)

        insurance_rule = None
        insurance_pct = Decimal(0)
        if data.declared_value:
            insurance_rule = await self.get_markup_rule(MarkupCategory.INSURANCE, data.carrier)
            insurance_pct = Decimal(insurance_rule.markup_value)

        breakdown = compute_total_fee(
            FeeInputs(
                base_fee=data.base_fee,
                conversion_rate=Decimal(carrier_rule.conversion_rate),
                carrier_markup=CarrierMarkup(
                    type=carrier_rule.markup_type,
                    value=Decimal(carrier_rule.markup_value),
                ),
                declared_value=data.declared_value,
                insurance_markup_percentage=insurance_pct,
                pickup_base_fee=pickup_base,
                pickup_markup_percentage=pickup_pct,
            ),
            currency=settings.settlement_currency,
        )
        logger.info(
            "fee_computed",
            carrier=data.carrier,
            carrier_rule_id=carrier_rule.id,
            total_fee=str(breakdown.total_fee),
        )
        return breakdown, carrier_rule, pickup_rule, insurance_rule


# Type alias for dependency injection
MarkupSvc = Annotated[MarkupService, Depends(MarkupService)]

