"""Markup configuration and fee calculation API routes."""

from fastapi import APIRouter, status

from shipdesk.api.dependencies import DBSession
from shipdesk.config import settings
from shipdesk.core.auth.dependencies import CurrentUser
from shipdesk.core.permissions import require_permission, require_resource_permission
from shipdesk.modules.markup.constants import (
    CARRIERS,
    CURRENCIES,
    MARKUP_TYPES,
    MarkupCategory,
)
from shipdesk.modules.markup.schemas import (
    CarrierOption,
    CurrencyOption,
    FeeBreakdownResponse,
    MarkupConfigResponse,
    MarkupRuleCreate,
    MarkupRuleResponse,
    MarkupRuleUpdate,
    MarkupTypeOption,
    QuoteRequest,
    QuoteResponse,
    SimulationRequest,
)
from shipdesk.modules.markup.services import MarkupSvc


router = APIRouter(prefix="/markup", tags=["markup"])


def _rule(rule: object | None) -> MarkupRuleResponse | None:
    return MarkupRuleResponse.model_validate(rule) if rule is not None else None


# ============================================================
# Configuration
# ============================================================


@router.get(
    "/config",
    response_model=MarkupConfigResponse,
    summary="Get markup configuration",
    description="Every markup rule grouped by fee category.",
)
@require_permission("markup_read")
async def get_config(
    service: MarkupSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> MarkupConfigResponse:
    """Get all markup rules."""
    grouped = {
        category: [MarkupRuleResponse.model_validate(r) for r in rules]
        for category, rules in (await service.get_config()).items()
    }
    return MarkupConfigResponse(
        settlement_currency=settings.settlement_currency,
        carrier_markups=grouped[MarkupCategory.CARRIER],
        pickup_markups=grouped[MarkupCategory.PICKUP],
        insurance_markups=grouped[MarkupCategory.INSURANCE],
    )


@router.get(
    "/rules",
    response_model=list[MarkupRuleResponse],
    summary="List markup rules",
)
@require_permission("markup_read")
async def list_rules(
    service: MarkupSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
    category: MarkupCategory | None = None,
) -> list[MarkupRuleResponse]:
    """List markup rules, optionally for one category."""
    return [MarkupRuleResponse.model_validate(r) for r in await service.list_rules(category)]


@router.post(
    "/rules",
    response_model=MarkupRuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create markup rule",
    description="Carrier `*` creates the global rule for the category.",
)
@require_permission("markup_create")
async def create_rule(
    data: MarkupRuleCreate,
    service: MarkupSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> MarkupRuleResponse:
    """Create a markup rule."""
    return MarkupRuleResponse.model_validate(await service.create_rule(data))


@router.get(
    "/rules/{rule_id}",
    response_model=MarkupRuleResponse,
    summary="Get markup rule",
)
@require_permission("markup_read")
async def get_rule(
    rule_id: int,
    service: MarkupSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> MarkupRuleResponse:
    return MarkupRuleResponse.model_validate(await service.get_rule(rule_id))


@router.put(
    "/rules/{rule_id}",
    response_model=MarkupRuleResponse,
    summary="Update markup rule",
)
@require_permission("markup_update")
async def update_rule(
    rule_id: int,
    data: MarkupRuleUpdate,
    service: MarkupSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> MarkupRuleResponse:
    """Partially update a markup rule."""
    return MarkupRuleResponse.model_validate(await service.update_rule(rule_id, data))


@router.delete(
    "/rules/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete markup rule",
)
@require_permission("markup_delete")
async def delete_rule(
    rule_id: int,
    service: MarkupSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> None:
    await service.delete_rule(rule_id)


# ============================================================
# Calculation
# ============================================================


@router.post(
    "/simulate",
    response_model=FeeBreakdownResponse,
    summary="Simulate fee calculation",
    description="Run the fee calculator on raw inputs without stored rules.",
)
@require_resource_permission("markup", "read")
async def simulate(
    data: SimulationRequest,
    service: MarkupSvc,
    current_user: CurrentUser,  # noqa: ARG001
    db: DBSession,  # noqa: ARG001
) -> FeeBreakdownResponse:
    """Simulate a fee breakdown."""
    return FeeBreakdownResponse(**service.simulate(data).as_dict())


@router.post(
    "/quote",
    response_model=QuoteResponse,
    summary="Quote customer fee",
    description="Price a carrier quote with the stored markup rules.",
)
async def quote(
    data: QuoteRequest,
    service: MarkupSvc,
    current_user: CurrentUser,  # noqa: ARG001
) -> QuoteResponse:
    """Quote the customer-facing fee for a carrier."""
    breakdown, carrier_rule, pickup_rule, insurance_rule = await service.quote(data)
    return QuoteResponse(
        **breakdown.as_dict(),
        carrier=data.carrier,
        carrier_rule=MarkupRuleResponse.model_validate(carrier_rule),
        pickup_rule=_rule(pickup_rule),
        insurance_rule=_rule(insurance_rule),
    )


# ============================================================
# Reference Data
# ============================================================


@router.get("/carriers", response_model=list[CarrierOption], summary="Available carriers")
async def list_carriers(current_user: CurrentUser) -> list[CarrierOption]:  # noqa: ARG001
    return [CarrierOption(**c) for c in CARRIERS]


@router.get("/currencies", response_model=list[CurrencyOption], summary="Available currencies")
async def list_currencies(current_user: CurrentUser) -> list[CurrencyOption]:  # noqa: ARG001
    return [CurrencyOption(**c) for c in CURRENCIES]


@router.get("/markup-types", response_model=list[MarkupTypeOption], summary="Markup types")
async def list_markup_types(current_user: CurrentUser) -> list[MarkupTypeOption]:  # noqa: ARG001
    return [MarkupTypeOption(**t) for t in MARKUP_TYPES]
