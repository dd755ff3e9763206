"""
Interaction layer of the authorization server, as seen by the consent routes.

An interaction is the server-side state of one in-progress authorization request.
The browser holds a signed `_interaction` cookie naming it. This module loads
interaction details, reports the prompt's missing scopes, and finalizes consent
by saving a grant and recording the interaction result.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from consent_server.audit import EVENT_CONSENT_ALLOW, OUTCOME_SUCCESS, log_audit
from consent_server.config import (
    INTERACTION_COOKIE_NAME,
    INTERACTION_COOKIE_SECRET,
    INTERACTION_TTL_SECONDS,
    ISSUER,
)
from consent_server.database import SessionLocal
from consent_server.errors import SessionNotFound, assert_that
from consent_server.models import Grant, Interaction
from consent_server.queries import Queries
from consent_server.scopes import MissingScopes, get_missing_scopes

logger = logging.getLogger(__name__)

_COOKIE_ALGORITHM = "HS256"


@dataclass
class Session:
    account_id: str


@dataclass
class InteractionDetails:
    uid: str
    session: Session | None
    params: dict[str, Any] = field(default_factory=dict)
    prompt: dict[str, Any] = field(default_factory=dict)
    grant_id: str | None = None


def issue_interaction_cookie(uid: str, ttl_seconds: int = INTERACTION_TTL_SECONDS) -> str:
    """Signed cookie value naming the interaction."""
    now = datetime.now(timezone.utc)
    payload = {"uid": uid, "iat": int(now.timestamp()), "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp())}
    return jwt.encode(payload, INTERACTION_COOKIE_SECRET, algorithm=_COOKIE_ALGORITHM)


def read_interaction_cookie(token: str | None) -> str | None:
    """Interaction uid from a cookie value, or None if missing, tampered or expired."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, INTERACTION_COOKIE_SECRET, algorithms=[_COOKIE_ALGORITHM])
    except jwt.InvalidTokenError as e:
        logger.debug("Interaction cookie rejected: %s", e)
        return None
    uid = payload.get("uid")
    return uid if isinstance(uid, str) else None


async def create_interaction(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    account_id: str | None,
    params: dict[str, Any],
    missing_oidc_scope: list[str] | None = None,
    missing_resource_scopes: dict[str, list[str]] | None = None,
    ttl_seconds: int = INTERACTION_TTL_SECONDS,
) -> Interaction:
    """Persist a new consent interaction and return it."""
    details: dict[str, Any] = {}
    if missing_oidc_scope is not None:
        details["missingOIDCScope"] = missing_oidc_scope
    if missing_resource_scopes is not None:
        details["missingResourceScopes"] = missing_resource_scopes
    interaction = Interaction(
        account_id=account_id,
        params=params,
        prompt={"name": "consent", "details": details},
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds),
    )
    async with session_factory() as session:
        async with session.begin():
            session.add(interaction)
    return interaction


class OIDCInteractionProvider:
    def __init__(self, queries: Queries, session_factory: async_sessionmaker[AsyncSession] = SessionLocal):
        self.queries = queries
        self._session_factory = session_factory

    async def interaction_details(self, request: Request) -> InteractionDetails:
        """Details of the interaction named by the request cookie. SessionNotFound if there is none."""
        uid = read_interaction_cookie(request.cookies.get(INTERACTION_COOKIE_NAME))
        if uid is None:
            raise SessionNotFound("interaction session not found")

        async with self._session_factory() as session:
            interaction = await session.get(Interaction, uid)
        if interaction is None or interaction.expires_at.replace(tzinfo=timezone.utc) < datetime.now(timezone.utc):
            raise SessionNotFound("interaction session not found")

        return InteractionDetails(
            uid=interaction.uid,
            session=Session(account_id=interaction.account_id) if interaction.account_id else None,
            params=dict(interaction.params or {}),
            prompt=dict(interaction.prompt or {}),
            grant_id=interaction.grant_id,
        )

    def get_missing_scopes(self, prompt: dict[str, Any]) -> MissingScopes:
        return get_missing_scopes(prompt)

    async def consent(self, details: InteractionDetails) -> str:
        """
        Grant the prompt's missing scopes to the client and finish the consent prompt.
        Returns the URL the browser continues the authorization at.
        """
        assert_that(details.session, "session.not_found")
        account_id = details.session.account_id
        client_id = str(details.params.get("client_id"))

        missing = self.get_missing_scopes(details.prompt)
        async with self._session_factory() as session:
            async with session.begin():
                grant = await session.get(Grant, details.grant_id) if details.grant_id else None
                if grant is None:
                    grant = Grant(account_id=account_id, client_id=client_id, oidc_scope="", resource_scopes={})
                    session.add(grant)
                grant.oidc_scope = _merge_scope(grant.oidc_scope, missing.missing_oidc_scope)
                resource_scopes = dict(grant.resource_scopes or {})
                for indicator, names in missing.missing_resource_scopes.items():
                    resource_scopes[indicator] = _merge_scope(resource_scopes.get(indicator, ""), names)
                grant.resource_scopes = resource_scopes
                await session.flush()

                interaction = await session.get(Interaction, details.uid)
                assert_that(interaction, SessionNotFound("interaction session not found"))
                interaction.grant_id = grant.id
                # Merge with an earlier submission of this interaction
                interaction.result = {**(interaction.result or {}), "consent": {"grantId": grant.id}}
            grant_id = grant.id

        # Only once the grant is saved
        await self.queries.users.set_first_consented_app_id(account_id, client_id)

        logger.info("Consent granted: client=%s account=%s grant=%s", client_id, account_id, grant_id)
        await log_audit(
            self._session_factory,
            EVENT_CONSENT_ALLOW,
            client_id=client_id,
            user_id=account_id,
            outcome=OUTCOME_SUCCESS,
        )
        return f"{ISSUER}/oidc/auth/{details.uid}"


def _merge_scope(existing: str, added: list[str]) -> str:
    scopes = existing.split() if existing else []
    for scope in added:
        if scope not in scopes:
            scopes.append(scope)
    return " ".join(scopes)


def get_interaction_provider() -> OIDCInteractionProvider:
    """Dependency: the interaction layer bound to the app's database."""
    return OIDCInteractionProvider(Queries(SessionLocal), SessionLocal)


async def get_interaction_details(
    request: Request,
    provider: OIDCInteractionProvider = Depends(get_interaction_provider),
) -> InteractionDetails:
    """Dependency: interaction details for the current request."""
    return await provider.interaction_details(request)
