"""
SQLAlchemy models for the consent server: users, applications, resources and scopes,
organizations with their roles, consent grants and the interaction state.
"""
import secrets
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_id() -> str:
    return secrets.token_hex(8)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    username: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    primary_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    primary_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # First application the user consented to; set once, never overwritten
    first_consented_app_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class Application(Base):
    __tablename__ = "applications"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_third_party: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # {"logoUrl": ..., "darkLogoUrl": ...}
    branding: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class ApplicationSignInExperience(Base):
    """Per-application overrides shown on the consent page."""

    __tablename__ = "application_sign_in_experiences"

    application_id: Mapped[str] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), primary_key=True
    )
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    branding: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    privacy_policy_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    terms_of_use_url: Mapped[str | None] = mapped_column(Text, nullable=True)


class Resource(Base):
    __tablename__ = "resources"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    indicator: Mapped[str] = mapped_column(Text, unique=True, nullable=False, index=True)


class Scope(Base):
    __tablename__ = "scopes"
    __table_args__ = (UniqueConstraint("resource_id", "name"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    resource_id: Mapped[str] = mapped_column(
        ForeignKey("resources.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Role(Base):
    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class UserRole(Base):
    __tablename__ = "users_roles"

    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role_id: Mapped[str] = mapped_column(ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)


class RoleScope(Base):
    __tablename__ = "roles_scopes"

    role_id: Mapped[str] = mapped_column(ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
    scope_id: Mapped[str] = mapped_column(ForeignKey("scopes.id", ondelete="CASCADE"), primary_key=True)


class Organization(Base):
    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class OrganizationUser(Base):
    """Membership: user belongs to organization."""

    __tablename__ = "organization_user_relations"

    organization_id: Mapped[str] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)


class OrganizationScope(Base):
    """Scope of the reserved organizations resource; not owned by any Resource."""

    __tablename__ = "organization_scopes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class OrganizationRole(Base):
    __tablename__ = "organization_roles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class OrganizationRoleUser(Base):
    __tablename__ = "organization_role_user_relations"

    organization_id: Mapped[str] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True
    )
    organization_role_id: Mapped[str] = mapped_column(
        ForeignKey("organization_roles.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)


class OrganizationRoleScope(Base):
    __tablename__ = "organization_role_scope_relations"

    organization_role_id: Mapped[str] = mapped_column(
        ForeignKey("organization_roles.id", ondelete="CASCADE"), primary_key=True
    )
    organization_scope_id: Mapped[str] = mapped_column(
        ForeignKey("organization_scopes.id", ondelete="CASCADE"), primary_key=True
    )


class OrganizationRoleResourceScope(Base):
    __tablename__ = "organization_role_resource_scope_relations"

    organization_role_id: Mapped[str] = mapped_column(
        ForeignKey("organization_roles.id", ondelete="CASCADE"), primary_key=True
    )
    scope_id: Mapped[str] = mapped_column(ForeignKey("scopes.id", ondelete="CASCADE"), primary_key=True)


class ApplicationUserConsentOrganization(Base):
    """Application may act within organization on behalf of user. Insert-only."""

    __tablename__ = "application_user_consent_organizations"

    application_id: Mapped[str] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    organization_id: Mapped[str] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class Grant(Base):
    """Scopes a user has granted to a client, per OIDC and per resource indicator."""

    __tablename__ = "grants"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    account_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    client_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    oidc_scope: Mapped[str] = mapped_column(Text, default="", nullable=False)  # space-separated
    # {indicator: "scope-a scope-b"}
    resource_scopes: Mapped[dict[str, str]] = mapped_column(JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class Interaction(Base):
    """In-progress authorization interaction, owned by the authorization layer."""

    __tablename__ = "interactions"

    uid: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_id)
    # None = no authenticated session yet
    account_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # Raw authorization request params (client_id, redirect_uri, scope, ...)
    params: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    # {"name": "consent", "details": {"missingOIDCScope": [...], "missingResourceScopes": {...}}}
    prompt: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    grant_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    result: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


class AuditLog(Base):
    """Security-relevant consent events. No tokens stored."""

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    client_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    outcome: Mapped[str] = mapped_column(String(16), nullable=False)  # success | fail
