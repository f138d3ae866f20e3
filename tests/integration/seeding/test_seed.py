"""Integration tests for the reference data seed."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from scripts.seed import MARKUP_RULES, PERMISSIONS, ROLES, seed_admin, seed_reference_data
from shipdesk.core.auth.backend import verify_password
from shipdesk.core.permissions.checker import PermissionChecker
from shipdesk.core.permissions.models import Permission, Role, RolePermission
from shipdesk.modules.markup.models import MarkupRule
from shipdesk.modules.users.models import User


pytestmark = pytest.mark.integration


async def _count(db: AsyncSession, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


class TestSeedReferenceData:
    """Tests for seed_reference_data."""

    async def test_seeds_everything(self, db: AsyncSession):
        roles = await seed_reference_data(db)

        assert set(roles) == {r["name"] for r in ROLES}
        assert await _count(db, Permission) == len(PERMISSIONS)
        assert await _count(db, MarkupRule) == len(MARKUP_RULES)

    async def test_running_twice_adds_nothing(self, db: AsyncSession):
        await seed_reference_data(db)
        counts = [
            await _count(db, model) for model in (Permission, Role, RolePermission, MarkupRule)
        ]

        await seed_reference_data(db)

        assert [
            await _count(db, model) for model in (Permission, Role, RolePermission, MarkupRule)
        ] == counts

    async def test_super_admin_holds_every_permission(self, db: AsyncSession):
        roles = await seed_reference_data(db)

        permissions = await PermissionChecker(db).load_permissions_for_role(
            roles["super_admin"].id
        )

        assert len(permissions) == len(PERMISSIONS)

    async def test_seed_admin(self, db: AsyncSession):
        roles = await seed_reference_data(db)

        await seed_admin(db, roles["super_admin"], "root@example.com", "RootPass123!")
        await seed_admin(db, roles["super_admin"], "root@example.com", "Other123!")

        admin = await db.scalar(select(User).where(User.email == "root@example.com"))
        assert admin.role_id == roles["super_admin"].id
        assert verify_password("RootPass123!", admin.password_hash)
