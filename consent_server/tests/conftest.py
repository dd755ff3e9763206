"""
Pytest configuration for consent_server. Use a throwaway SQLite file so tests don't touch the
working directory; each session gets its own connection, as in production.

Sync tests (TestClient) use `seeded`; async tests use `seeded_async`, which runs on the
test's own event loop.
"""
import asyncio
import os
import tempfile

_tmpdir = tempfile.mkdtemp(prefix="consent_server_tests_")
os.environ["AUTH_DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_tmpdir, 'test.db')}"
os.environ["OAUTH_INTERACTION_SECRET"] = "test-interaction-secret"
os.environ["OAUTH_ISSUER"] = "http://127.0.0.1:9000"
for _name in ("OAUTH_SEED_USER", "OAUTH_CLIENT_ID", "OAUTH_EXTENDED_SCOPE_RESOLUTION"):
    os.environ.pop(_name, None)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from consent_server.database import SessionLocal, drop_db, init_db  # noqa: E402
from consent_server.models import (  # noqa: E402
    Application,
    ApplicationSignInExperience,
    Organization,
    OrganizationRole,
    OrganizationRoleResourceScope,
    OrganizationRoleScope,
    OrganizationRoleUser,
    OrganizationScope,
    OrganizationUser,
    Resource,
    Role,
    RoleScope,
    Scope,
    User,
    UserRole,
)


async def add_all(*objects) -> None:
    async with SessionLocal() as session:
        async with session.begin():
            session.add_all(objects)


async def reset_db() -> None:
    await drop_db()
    await init_db()


async def seed_data() -> None:
    """
    alice (user-1): direct role grants read:orders; member of Acme (org-1) and Initech (org-3);
    in Acme her org role grants the read:members organization scope and write:orders.
    bob (user-2): no roles, member of Globex (org-2).
    """
    # Parents first: each add_all call is its own transaction
    await add_all(
        User(id="user-1", username="alice", name="Alice", primary_email="alice@example.com"),
        User(id="user-2", username="bob", name="Bob"),
        Application(
            id="test-client",
            name="Test Client",
            description="Dev application",
            branding={"logoUrl": "https://cdn.example.com/logo.png"},
        ),
        Application(id="third-party-app", name="Third Party", is_third_party=True),
        Resource(id="res-orders", name="Orders API", indicator="https://api.example.com/orders"),
        Resource(id="res-billing", name="Billing API", indicator="https://api.example.com/billing"),
        Role(id="role-reader", name="reader"),
        Organization(id="org-1", name="Acme"),
        Organization(id="org-2", name="Globex"),
        Organization(id="org-3", name="Initech"),
        OrganizationScope(id="oscope-read", name="read:members", description="Read members"),
        OrganizationScope(id="oscope-manage", name="manage:members", description="Manage members"),
        OrganizationRole(id="orole-admin", name="admin"),
    )
    await add_all(
        ApplicationSignInExperience(
            application_id="third-party-app",
            display_name="Third Party Display",
            branding={"logoUrl": "https://cdn.example.com/third.png"},
            privacy_policy_url="https://third.example.com/privacy",
            terms_of_use_url="https://third.example.com/terms",
        ),
        Scope(id="scope-read-orders", resource_id="res-orders", name="read:orders", description="Read orders"),
        Scope(id="scope-write-orders", resource_id="res-orders", name="write:orders", description="Write orders"),
        Scope(id="scope-read-invoices", resource_id="res-billing", name="read:invoices"),
        UserRole(user_id="user-1", role_id="role-reader"),
        OrganizationUser(organization_id="org-1", user_id="user-1"),
        OrganizationUser(organization_id="org-3", user_id="user-1"),
        OrganizationUser(organization_id="org-2", user_id="user-2"),
        OrganizationRoleScope(organization_role_id="orole-admin", organization_scope_id="oscope-read"),
        OrganizationRoleUser(organization_id="org-1", organization_role_id="orole-admin", user_id="user-1"),
    )
    await add_all(
        RoleScope(role_id="role-reader", scope_id="scope-read-orders"),
        OrganizationRoleResourceScope(organization_role_id="orole-admin", scope_id="scope-write-orders"),
    )


@pytest.fixture
def seeded():
    """Fresh tables with the sample data, for sync tests."""

    async def _setup():
        await reset_db()
        await seed_data()

    asyncio.run(_setup())
    return SessionLocal


@pytest_asyncio.fixture
async def seeded_async():
    """Fresh tables with the sample data, for async tests."""
    await reset_db()
    await seed_data()
    return SessionLocal


@pytest.fixture
def insert_rows(seeded):
    """Insert extra rows from a sync test (one transaction per call)."""

    def _insert(*objects):
        asyncio.run(add_all(*objects))

    return _insert
