"""
Scopes a resource grants to a user, directly or through an organization.
"""
import logging

from consent_server.models import OrganizationScope, Scope
from consent_server.queries import Queries
from consent_server.scopes import is_organization_resource

logger = logging.getLogger(__name__)


async def find_resource_scopes(
    queries: Queries,
    indicator: str,
    user_id: str,
    organization_id: str | None = None,
) -> list[Scope] | list[OrganizationScope]:
    """
    Return the scopes of `indicator` available to the user.

    Without organization_id: scopes from the user's own roles. With organization_id:
    scopes from the user's roles in that organization. For the organizations
    pseudo-resource, no organization means every organization scope.
    An empty list means nothing applies.
    """
    if is_organization_resource(indicator):
        if organization_id is None:
            return await queries.organizations.find_all_scopes()
        return await queries.organizations.get_user_organization_scopes(organization_id, user_id)

    if organization_id is None:
        return await queries.scopes.find_user_scopes_for_resource_indicator(user_id, indicator)
    return await queries.organizations.get_user_resource_scopes(organization_id, user_id, indicator)
