#!/usr/bin/env python
"""
Seed roles, permissions, the role/permission matrix and default markup rules.

Safe to run repeatedly: existing rows are left untouched.

    python scripts/seed.py                 # reference data only
    python scripts/seed.py --admin-email admin@example.com --admin-password '...'
"""

import argparse
import asyncio
from decimal import Decimal
from typing import TypedDict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shipdesk.core.auth.backend import hash_password
from shipdesk.core.constants import GLOBAL_CARRIER
from shipdesk.core.database import async_session_factory
from shipdesk.core.permissions.models import Permission, Role
from shipdesk.modules.markup.constants import MarkupCategory, MarkupType
from shipdesk.modules.markup.models import MarkupRule
from shipdesk.modules.roles.repos import RoleRepository
from shipdesk.modules.users.models import User


class PermissionSeed(TypedDict):
    resource: str
    action: str
    description: str


class RoleSeed(TypedDict):
    name: str
    description: str
    permissions: list[str] | None  # None means every permission


class MarkupRuleSeed(TypedDict):
    category: MarkupCategory
    carrier: str
    base_currency: str
    conversion_rate: Decimal
    markup_type: MarkupType
    markup_value: Decimal


PERMISSIONS: list[PermissionSeed] = [
    {"resource": "user", "action": "create", "description": "Create new users"},
    {"resource": "user", "action": "read", "description": "Read user information"},
    {"resource": "user", "action": "update", "description": "Update user information"},
    {"resource": "user", "action": "delete", "description": "Delete users"},
    {"resource": "role", "action": "create", "description": "Create new roles"},
    {"resource": "role", "action": "read", "description": "Read role information"},
    {"resource": "role", "action": "update", "description": "Update role information"},
    {"resource": "role", "action": "delete", "description": "Delete roles"},
    {"resource": "permission", "action": "create", "description": "Create new permissions"},
    {"resource": "permission", "action": "read", "description": "Read permission information"},
    {"resource": "permission", "action": "update", "description": "Update permission information"},
    {"resource": "permission", "action": "delete", "description": "Delete permissions"},
    {"resource": "markup", "action": "create", "description": "Create markup rules"},
    {"resource": "markup", "action": "read", "description": "Read markup configuration"},
    {"resource": "markup", "action": "update", "description": "Update markup rules"},
    {"resource": "markup", "action": "delete", "description": "Delete markup rules"},
    {"resource": "payment", "action": "create", "description": "Create payments"},
    {"resource": "payment", "action": "read", "description": "Read own payments"},
    {"resource": "shipment", "action": "create", "description": "Create shipments"},
    {"resource": "shipment", "action": "read", "description": "Read shipments"},
    {"resource": "shipment", "action": "update", "description": "Update shipments"},
    {"resource": "shipment", "action": "delete", "description": "Delete shipments"},
]

ROLES: list[RoleSeed] = [
    {
        "name": "super_admin",
        "description": "Super Administrator with full system access",
        "permissions": None,
    },
    {
        "name": "admin",
        "description": "Administrator with management access",
        "permissions": [
            "user_create",
            "user_read",
            "user_update",
            "user_delete",
            "role_create",
            "role_read",
            "role_update",
            "role_delete",
            "permission_read",
            "markup_create",
            "markup_read",
            "markup_update",
            "markup_delete",
            "payment_read",
        ],
    },
    {
        "name": "user",
        "description": "Regular user with basic access",
        "permissions": [
            "user_read",
            "payment_create",
            "payment_read",
            "shipment_create",
            "shipment_read",
        ],
    },
    {
        "name": "moderator",
        "description": "Moderator with content management access",
        "permissions": ["user_read", "user_update"],
    },
]

MARKUP_RULES: list[MarkupRuleSeed] = [
    # Carrier postage
    {
        "category": MarkupCategory.CARRIER,
        "carrier": "Canada Post",
        "base_currency": "USD",
        "conversion_rate": Decimal("1.35"),
        "markup_type": MarkupType.FLAT,
        "markup_value": Decimal("3.5"),
    },
    {
        "category": MarkupCategory.CARRIER,
        "carrier": "FedEx",
        "base_currency": "CAD",
        "conversion_rate": Decimal("1"),
        "markup_type": MarkupType.PERCENTAGE,
        "markup_value": Decimal("5"),
    },
    {
        "category": MarkupCategory.CARRIER,
        "carrier": "UPS",
        "base_currency": "CAD",
        "conversion_rate": Decimal("1"),
        "markup_type": MarkupType.PERCENTAGE,
        "markup_value": Decimal("10"),
    },
    {
        "category": MarkupCategory.CARRIER,
        "carrier": "DHL",
        "base_currency": "USD",
        "conversion_rate": Decimal("1.4"),
        "markup_type": MarkupType.FLAT,
        "markup_value": Decimal("2.5"),
    },
    # Pickup
    {
        "category": MarkupCategory.PICKUP,
        "carrier": "Canada Post",
        "base_currency": "USD",
        "conversion_rate": Decimal("1.35"),
        "markup_type": MarkupType.PERCENTAGE,
        "markup_value": Decimal("10"),
    },
    {
        "category": MarkupCategory.PICKUP,
        "carrier": "UPS",
        "base_currency": "CAD",
        "conversion_rate": Decimal("1"),
        "markup_type": MarkupType.PERCENTAGE,
        "markup_value": Decimal("5"),
    },
    {
        "category": MarkupCategory.PICKUP,
        "carrier": "FedEx",
        "base_currency": "USD",
        "conversion_rate": Decimal("1.4"),
        "markup_type": MarkupType.PERCENTAGE,
        "markup_value": Decimal("8"),
    },
    # Insurance, shared by every carrier
    {
        "category": MarkupCategory.INSURANCE,
        "carrier": GLOBAL_CARRIER,
        "base_currency": "USD",
        "conversion_rate": Decimal("1.5"),
        "markup_type": MarkupType.PERCENTAGE,
        "markup_value": Decimal("1.25"),
    },
]


async def seed_permissions(session: AsyncSession) -> dict[str, Permission]:
    """Create missing permissions and return all of them by name."""
    result = await session.execute(select(Permission))
    by_name = {p.name: p for p in result.scalars().all()}

    for data in PERMISSIONS:
        name = f"{data['resource']}_{data['action']}"
        if name in by_name:
            continue
        permission = Permission(
            name=name,
            resource=data["resource"],
            action=data["action"],
            description=data["description"],
        )
        session.add(permission)
        by_name[name] = permission
        print(f"Created permission: {name}")

    await session.flush()
    return by_name


async def seed_roles(session: AsyncSession, permissions: dict[str, Permission]) -> dict[str, Role]:
    """Create missing roles and grant each its permission set."""
    repo = RoleRepository(session)
    roles: dict[str, Role] = {}

    for data in ROLES:
        role = await repo.get_by_name(data["name"])
        if role is None:
            role = await repo.create(Role(name=data["name"], description=data["description"]))
            print(f"Created role: {role.name}")

        names = data["permissions"] if data["permissions"] is not None else list(permissions)
        added = await repo.add_permissions(role.id, (permissions[n].id for n in names))
        if added:
            print(f"Granted {len(added)} permission(s) to {role.name}")
        roles[role.name] = role

    return roles


async def seed_markup_rules(session: AsyncSession) -> None:
    """Create the default markup rules that do not exist yet."""
    for data in MARKUP_RULES:
        result = await session.execute(
            select(MarkupRule).where(
                MarkupRule.category == data["category"].value,
                MarkupRule.carrier == data["carrier"],
            )
        )
        if result.scalar_one_or_none():
            continue
        session.add(
            MarkupRule(
                category=data["category"].value,
                carrier=data["carrier"],
                base_currency=data["base_currency"],
                conversion_rate=data["conversion_rate"],
                markup_type=data["markup_type"].value,
                markup_value=data["markup_value"],
            )
        )
        print(f"Created {data['category'].value} markup rule: {data['carrier']}")

    await session.flush()


async def seed_admin(session: AsyncSession, role: Role, email: str, password: str) -> None:
    """Create a super admin account unless the email is taken."""
    result = await session.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        print(f"Admin already exists: {email}")
        return

    session.add(
        User(
            email=email,
            full_name="Super Admin",
            password_hash=hash_password(password),
            role_id=role.id,
            email_verified=True,
        )
    )
    await session.flush()
    print(f"Created admin: {email}")


async def seed_reference_data(session: AsyncSession) -> dict[str, Role]:
    """Seed permissions, roles and markup rules in one session."""
    permissions = await seed_permissions(session)
    roles = await seed_roles(session, permissions)
    await seed_markup_rules(session)
    return roles


async def main(admin_email: str | None, admin_password: str | None) -> None:
    async with async_session_factory() as session:
        roles = await seed_reference_data(session)
        if admin_email and admin_password:
            await seed_admin(session, roles["super_admin"], admin_email, admin_password)
        await session.commit()
    print("Seeding complete")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed reference data")
    parser.add_argument("--admin-email", help="Create a super admin with this email")
    parser.add_argument("--admin-password", help="Password for the super admin")
    args = parser.parse_args()

    asyncio.run(main(args.admin_email, args.admin_password))
