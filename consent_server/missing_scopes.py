"""
Turn the prompt's missing resource scope names into resource and scope records
for the consent page.

Resource existence is guaranteed by the authorization layer, so an unknown
indicator (or an unknown organization scope) is an invalid target. A scope name
that does not resolve on an existing resource is dropped and logged.
"""
import asyncio
import logging

from consent_server.config import ConsentConfig
from consent_server.errors import InvalidTarget, assert_that
from consent_server.queries import Queries
from consent_server.resource_scopes import find_resource_scopes
from consent_server.schemas import MissingResourceScopes
from consent_server.scopes import RESERVED_ORGANIZATION_RESOURCE, MissingScopes

logger = logging.getLogger(__name__)


def _scope_info(scope) -> dict:
    return {"id": scope.id, "name": scope.name, "description": scope.description}


async def _organization_resource_scopes(queries: Queries, scope_names: list[str]) -> dict:
    organization_scopes = {scope.name: scope for scope in await queries.organizations.find_all_scopes()}
    scopes = []
    for name in scope_names:
        scope = organization_scopes.get(name)
        assert_that(scope, InvalidTarget(f"scope with name {name} not found for organization resource"))
        scopes.append(_scope_info(scope))
    # The pseudo-resource has no record; its indicator doubles as id and name
    return {
        "resource": {"id": RESERVED_ORGANIZATION_RESOURCE, "name": RESERVED_ORGANIZATION_RESOURCE},
        "scopes": scopes,
    }


async def _resource_scopes(queries: Queries, indicator: str, scope_names: list[str]) -> dict:
    resource = await queries.resources.find_resource_by_indicator(indicator)
    assert_that(resource, InvalidTarget(f"resource with indicator {indicator} not found"))

    found = await asyncio.gather(
        *(queries.scopes.find_scope_by_name_and_resource_id(name, resource.id) for name in scope_names)
    )
    scopes = []
    for name, scope in zip(scope_names, found):
        if scope is None:
            logger.warning("Scope %s not found on resource %s; dropped from consent", name, indicator)
            continue
        scopes.append(_scope_info(scope))
    return {"resource": {"id": resource.id, "name": resource.name}, "scopes": scopes}


async def parse_missing_resource_scopes_info(
    queries: Queries, missing_resource_scopes: dict[str, list[str]] | None
) -> list[MissingResourceScopes]:
    """Look up resource and scope details for each indicator; keep prompt order."""
    if not missing_resource_scopes:
        return []

    missing = MissingScopes(missing_resource_scopes=dict(missing_resource_scopes))
    lookups = {
        indicator: _resource_scopes(queries, indicator, names) for indicator, names in missing.resource_scopes.items()
    }
    if RESERVED_ORGANIZATION_RESOURCE in missing.missing_resource_scopes:
        lookups[RESERVED_ORGANIZATION_RESOURCE] = _organization_resource_scopes(queries, missing.organization_scopes)
    resolved = dict(zip(lookups, await asyncio.gather(*lookups.values())))

    # Back to prompt order; no record without scopes
    records = [resolved[indicator] for indicator in missing.missing_resource_scopes]
    return [MissingResourceScopes.model_validate(record) for record in records if record["scopes"]]


async def filter_and_parse_missing_resource_scopes(
    queries: Queries,
    resource_scopes: dict[str, list[str]],
    user_id: str,
    *,
    config: ConsentConfig,
    organization_id: str | None = None,
) -> list[MissingResourceScopes]:
    """
    Keep only the missing scopes the user holds (in the organization, when given),
    then resolve them. With extended scope resolution off, names pass through unchanged.
    """

    async def _filter(indicator: str, missing: list[str]) -> tuple[str, list[str]]:
        if not config.extended_scope_resolution:
            return indicator, missing
        available = {
            scope.name for scope in await find_resource_scopes(queries, indicator, user_id, organization_id)
        }
        return indicator, [name for name in missing if name in available]

    filtered = dict(
        await asyncio.gather(*(_filter(indicator, missing) for indicator, missing in resource_scopes.items()))
    )
    return await parse_missing_resource_scopes_info(queries, filtered)
