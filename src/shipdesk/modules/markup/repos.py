"""Markup rule repository.

This is the configuration store the fee calculator reads from. Lookups fall
back to the global rule (carrier ``"*"``) of the same category.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy import select

from shipdesk.api.dependencies import DBSession
from shipdesk.core.constants import GLOBAL_CARRIER
from shipdesk.modules.markup.constants import MarkupCategory
from shipdesk.modules.markup.models import MarkupRule


class MarkupRuleRepository:
    """Repository for MarkupRule database operations."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def create(self, rule: MarkupRule) -> MarkupRule:
        self.session.add(rule)
        await self.session.flush()
        await self.session.refresh(rule)
        return rule

    async def get_by_id(self, rule_id: int) -> MarkupRule | None:
        result = await self.session.execute(
            select(MarkupRule).where(MarkupRule.id == rule_id)
        )
        return result.scalar_one_or_none()

    async def get_exact(self, category: MarkupCategory, carrier: str) -> MarkupRule | None:
        """Get the rule stored for exactly this category and carrier."""
        stmt = select(MarkupRule).where(
            MarkupRule.category == category.value,
            MarkupRule.carrier == carrier,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_markup_rule(
        self, category: MarkupCategory, carrier: str
    ) -> MarkupRule | None:
        """Get the rule that prices ``carrier`` in ``category``.

        Args:
            category: Fee category
            carrier: Carrier display name

        Returns:
            The carrier's own rule, else the category's global rule, else None
        """
        rule = await self.get_exact(category, carrier)
        if rule is None and carrier != GLOBAL_CARRIER:
            rule = await self.get_exact(category, GLOBAL_CARRIER)
        return rule

    async def list_all(self, category: MarkupCategory | None = None) -> list[MarkupRule]:
        """List rules ordered by category then carrier."""
        stmt = select(MarkupRule)
        if category is not None:
            stmt = stmt.where(MarkupRule.category == category.value)
        stmt = stmt.order_by(MarkupRule.category, MarkupRule.carrier)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update(self, rule: MarkupRule) -> MarkupRule:
        await self.session.flush()
        await self.session.refresh(rule)
        return rule

    async def delete(self, rule: MarkupRule) -> None:
        await self.session.delete(rule)
        await self.session.flush()


# Type alias for dependency injection
MarkupRuleRepo = Annotated[MarkupRuleRepository, Depends(MarkupRuleRepository)]
