"""
Read/write queries per entity type. Every call opens its own session, so calls
may be awaited concurrently (asyncio.gather) within one request.
"""
import logging

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from consent_server.database import SessionLocal
from consent_server.errors import RequestError
from consent_server.models import (
    Application,
    ApplicationSignInExperience,
    ApplicationUserConsentOrganization,
    Organization,
    OrganizationRoleResourceScope,
    OrganizationRoleScope,
    OrganizationRoleUser,
    OrganizationScope,
    OrganizationUser,
    Resource,
    RoleScope,
    Scope,
    User,
    UserRole,
)

logger = logging.getLogger(__name__)


class _Queries:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory


class ResourceQueries(_Queries):
    async def find_resource_by_indicator(self, indicator: str) -> Resource | None:
        async with self._session_factory() as session:
            result = await session.execute(select(Resource).where(Resource.indicator == indicator))
            return result.scalars().first()


class ScopeQueries(_Queries):
    async def find_scope_by_name_and_resource_id(self, name: str, resource_id: str) -> Scope | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Scope).where(Scope.name == name, Scope.resource_id == resource_id)
            )
            return result.scalars().first()

    async def find_user_scopes_for_resource_indicator(self, user_id: str, indicator: str) -> list[Scope]:
        """Scopes of the resource granted to the user directly through user roles."""
        stmt = (
            select(Scope)
            .join(Resource, Resource.id == Scope.resource_id)
            .join(RoleScope, RoleScope.scope_id == Scope.id)
            .join(UserRole, UserRole.role_id == RoleScope.role_id)
            .where(UserRole.user_id == user_id, Resource.indicator == indicator)
            .distinct()
            .order_by(Scope.name)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())


class OrganizationQueries(_Queries):
    async def find_all_scopes(self) -> list[OrganizationScope]:
        async with self._session_factory() as session:
            result = await session.execute(select(OrganizationScope).order_by(OrganizationScope.name))
            return list(result.scalars().all())

    async def get_organizations_by_user_id(self, user_id: str) -> list[Organization]:
        stmt = (
            select(Organization)
            .join(OrganizationUser, OrganizationUser.organization_id == Organization.id)
            .where(OrganizationUser.user_id == user_id)
            .order_by(Organization.name, Organization.id)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_user_resource_scopes(
        self, organization_id: str, user_id: str, indicator: str
    ) -> list[Scope]:
        """Resource scopes granted to the user by their roles in the organization."""
        stmt = (
            select(Scope)
            .join(Resource, Resource.id == Scope.resource_id)
            .join(OrganizationRoleResourceScope, OrganizationRoleResourceScope.scope_id == Scope.id)
            .join(
                OrganizationRoleUser,
                OrganizationRoleUser.organization_role_id == OrganizationRoleResourceScope.organization_role_id,
            )
            .where(
                OrganizationRoleUser.organization_id == organization_id,
                OrganizationRoleUser.user_id == user_id,
                Resource.indicator == indicator,
            )
            .distinct()
            .order_by(Scope.name)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_user_organization_scopes(self, organization_id: str, user_id: str) -> list[OrganizationScope]:
        """Organization scopes granted to the user by their roles in the organization."""
        stmt = (
            select(OrganizationScope)
            .join(OrganizationRoleScope, OrganizationRoleScope.organization_scope_id == OrganizationScope.id)
            .join(
                OrganizationRoleUser,
                OrganizationRoleUser.organization_role_id == OrganizationRoleScope.organization_role_id,
            )
            .where(
                OrganizationRoleUser.organization_id == organization_id,
                OrganizationRoleUser.user_id == user_id,
            )
            .distinct()
            .order_by(OrganizationScope.name)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())


class UserQueries(_Queries):
    async def find_user_by_id(self, user_id: str) -> User:
        async with self._session_factory() as session:
            user = await session.get(User, user_id)
        if user is None:
            raise RequestError("entity.not_exists_with_id", status_code=404)
        return user

    async def set_first_consented_app_id(self, user_id: str, application_id: str) -> bool:
        """Record the first application the user consented to. Returns True if it was recorded now."""
        async with self._session_factory() as session:
            async with session.begin():
                user = await session.get(User, user_id)
                if user is None or user.first_consented_app_id:
                    return False
                user.first_consented_app_id = application_id
        return True


class ApplicationQueries(_Queries):
    async def find_application_by_id(self, application_id: str) -> Application:
        async with self._session_factory() as session:
            application = await session.get(Application, application_id)
        if application is None:
            raise RequestError("entity.not_exists_with_id", status_code=404)
        return application

    async def safe_find_sign_in_experience_by_application_id(
        self, application_id: str
    ) -> ApplicationSignInExperience | None:
        async with self._session_factory() as session:
            return await session.get(ApplicationSignInExperience, application_id)

    async def insert_user_consent_organizations(self, *rows: tuple[str, str, str]) -> None:
        """
        Insert (application_id, user_id, organization_id) rows in one transaction.
        Rows that already exist are left untouched.
        """
        if not rows:
            return
        values = [
            {"application_id": application_id, "user_id": user_id, "organization_id": organization_id}
            for application_id, user_id, organization_id in rows
        ]
        async with self._session_factory() as session:
            async with session.begin():
                insert = postgresql_insert if session.get_bind().dialect.name == "postgresql" else sqlite_insert
                stmt = insert(ApplicationUserConsentOrganization).values(values).on_conflict_do_nothing()
                await session.execute(stmt)
        logger.debug("Inserted %d user consent organization row(s)", len(rows))


class Queries:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = SessionLocal):
        self.session_factory = session_factory
        self.resources = ResourceQueries(session_factory)
        self.scopes = ScopeQueries(session_factory)
        self.organizations = OrganizationQueries(session_factory)
        self.users = UserQueries(session_factory)
        self.applications = ApplicationQueries(session_factory)


def get_queries() -> Queries:
    """Dependency: query interface bound to the app's session factory."""
    return Queries(SessionLocal)
