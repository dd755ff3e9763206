"""
Consent endpoints of the interaction flow.
GET /interaction/consent: what the consent page needs to show (application, user,
missing OIDC and resource scopes, organizations).
POST /interaction/consent: grant selected organizations to the application, then finish consent.
"""
import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends

from consent_server.audit import EVENT_CONSENT_ORGANIZATIONS_GRANTED, OUTCOME_SUCCESS, log_audit
from consent_server.config import ConsentConfig, get_consent_config
from consent_server.errors import InvalidClient, InvalidRedirectUri, assert_that
from consent_server.interaction import (
    InteractionDetails,
    OIDCInteractionProvider,
    get_interaction_details,
    get_interaction_provider,
)
from consent_server.missing_scopes import filter_and_parse_missing_resource_scopes
from consent_server.models import Application, ApplicationSignInExperience, Organization
from consent_server.organizations import validate_user_consent_organization_membership
from consent_server.queries import Queries, get_queries
from consent_server.schemas import (
    ApplicationSignInExperienceInfo,
    ConsentInfoResponse,
    ConsentOrganization,
    ConsentRedirect,
    ConsentRequest,
    PublicApplication,
    PublicUserInfo,
)
from consent_server.scopes import ORGANIZATIONS_SCOPE, filter_consentable_oidc_scopes

logger = logging.getLogger(__name__)
router = APIRouter()

CONSENT_PATH = "/interaction/consent"


def merge_application_view(
    application: Application, sign_in_experience: ApplicationSignInExperience | None
) -> dict[str, Any]:
    """Public application fields, overlaid by the sign-in experience fields when one exists."""
    view = PublicApplication.model_validate(application).model_dump(by_alias=True)
    if sign_in_experience is not None:
        view.update(ApplicationSignInExperienceInfo.model_validate(sign_in_experience).model_dump(by_alias=True))
    return view


class ConsentService:
    def __init__(self, queries: Queries, provider: OIDCInteractionProvider, config: ConsentConfig):
        self.queries = queries
        self.provider = provider
        self.config = config

    async def get_consent_info(self, details: InteractionDetails) -> ConsentInfoResponse:
        assert_that(details.session, "session.not_found")
        client_id = details.params.get("client_id")
        redirect_uri = details.params.get("redirect_uri")
        assert_that(client_id and isinstance(client_id, str), InvalidClient("client must be available"))
        assert_that(
            redirect_uri and isinstance(redirect_uri, str), InvalidRedirectUri("redirect_uri must be available")
        )
        account_id = details.session.account_id

        application, sign_in_experience, user = await asyncio.gather(
            self.queries.applications.find_application_by_id(client_id),
            self.queries.applications.safe_find_sign_in_experience_by_application_id(client_id),
            self.queries.users.find_user_by_id(account_id),
        )

        missing = self.provider.get_missing_scopes(details.prompt)
        # Organization scopes travel in the same mapping as resource scopes; the
        # enricher tells them apart by indicator.
        all_missing_resource_scopes = missing.missing_resource_scopes

        missing_resource_scopes = await filter_and_parse_missing_resource_scopes(
            self.queries, all_missing_resource_scopes, account_id, config=self.config
        )

        organizations = (
            await self.queries.organizations.get_organizations_by_user_id(account_id)
            if ORGANIZATIONS_SCOPE in missing.missing_oidc_scope
            else []
        )

        async def _organization_entry(organization: Organization) -> ConsentOrganization:
            if not self.config.extended_scope_resolution:
                return ConsentOrganization(id=organization.id, name=organization.name)
            scopes = await filter_and_parse_missing_resource_scopes(
                self.queries,
                all_missing_resource_scopes,
                account_id,
                config=self.config,
                organization_id=organization.id,
            )
            return ConsentOrganization(id=organization.id, name=organization.name, missing_resource_scopes=scopes)

        organization_entries = await asyncio.gather(*(_organization_entry(o) for o in organizations))

        return ConsentInfoResponse(
            application=merge_application_view(application, sign_in_experience),
            user=PublicUserInfo.model_validate(user),
            organizations=list(organization_entries),
            missing_oidc_scope=filter_consentable_oidc_scopes(missing.missing_oidc_scope),
            missing_resource_scopes=missing_resource_scopes,
            redirect_uri=redirect_uri,
        )

    async def submit_consent(self, details: InteractionDetails, organization_ids: list[str] | None) -> str:
        """Grant the organizations (if any), then finish consent. Returns the redirect target."""
        if organization_ids:
            assert_that(details.session, "session.not_found")
            application_id = details.params.get("client_id")
            assert_that(
                application_id and isinstance(application_id, str), InvalidClient("client must be available")
            )
            user_id = details.session.account_id
            organization_ids = list(dict.fromkeys(organization_ids))

            await validate_user_consent_organization_membership(self.queries, user_id, organization_ids)

            await self.queries.applications.insert_user_consent_organizations(
                *((application_id, user_id, organization_id) for organization_id in organization_ids)
            )
            logger.info(
                "Granted organizations %s to application %s for user %s",
                ", ".join(organization_ids),
                application_id,
                user_id,
            )
            await log_audit(
                self.queries.session_factory,
                EVENT_CONSENT_ORGANIZATIONS_GRANTED,
                client_id=application_id,
                user_id=user_id,
                outcome=OUTCOME_SUCCESS,
            )

        return await self.provider.consent(details)


def get_consent_service(
    queries: Queries = Depends(get_queries),
    provider: OIDCInteractionProvider = Depends(get_interaction_provider),
    config: ConsentConfig = Depends(get_consent_config),
) -> ConsentService:
    return ConsentService(queries, provider, config)


@router.get(CONSENT_PATH, response_model=ConsentInfoResponse, response_model_exclude_unset=True)
async def get_consent(
    details: InteractionDetails = Depends(get_interaction_details),
    service: ConsentService = Depends(get_consent_service),
):
    """Consent info for the consent page."""
    return await service.get_consent_info(details)


@router.post(CONSENT_PATH, response_model=ConsentRedirect)
async def post_consent(
    body: ConsentRequest | None = None,
    details: InteractionDetails = Depends(get_interaction_details),
    service: ConsentService = Depends(get_consent_service),
):
    """
    Consent to the current interaction. organizationIds: organizations the user shares with
    the application; every one must be an organization the user belongs to.
    """
    organization_ids = body.organization_ids if body else None
    redirect_to = await service.submit_consent(details, organization_ids)
    return ConsentRedirect(redirect_to=redirect_to)
