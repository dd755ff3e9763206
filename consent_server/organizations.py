"""
Organization membership checks for organization consent.
"""
import logging

from consent_server.errors import RequestError, assert_that
from consent_server.queries import Queries

logger = logging.getLogger(__name__)


async def validate_user_consent_organization_membership(
    queries: Queries, user_id: str, organization_ids: list[str]
) -> None:
    """Raise organization.require_membership (403) unless the user belongs to every organization."""
    user_organization_ids = {
        organization.id for organization in await queries.organizations.get_organizations_by_user_id(user_id)
    }
    missing = [organization_id for organization_id in organization_ids if organization_id not in user_organization_ids]
    if missing:
        logger.warning("User %s is not a member of organization(s) %s", user_id, ", ".join(missing))
    assert_that(not missing, RequestError("organization.require_membership", status_code=403))
