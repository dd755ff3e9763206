"""
Request and response shapes for the consent endpoints. JSON keys are camelCase.
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ScopeInfo(_Schema):
    id: str
    name: str
    description: str | None = None


class ResourceInfo(_Schema):
    id: str
    name: str


class MissingResourceScopes(_Schema):
    resource: ResourceInfo
    scopes: list[ScopeInfo] = Field(min_length=1)


class PublicApplication(_Schema):
    id: str
    name: str
    description: str | None = None
    is_third_party: bool = False
    branding: dict[str, Any] = Field(default_factory=dict)


class ApplicationSignInExperienceInfo(_Schema):
    display_name: str | None = None
    branding: dict[str, Any] = Field(default_factory=dict)
    privacy_policy_url: str | None = None
    terms_of_use_url: str | None = None


class PublicUserInfo(_Schema):
    id: str
    name: str | None = None
    avatar: str | None = None
    username: str | None = None
    primary_email: str | None = None
    primary_phone: str | None = None


class ConsentOrganization(_Schema):
    id: str
    name: str
    # Left unset (and omitted from the response) unless extended scope resolution is on
    missing_resource_scopes: list[MissingResourceScopes] | None = None


class ConsentInfoResponse(_Schema):
    application: dict[str, Any]
    user: PublicUserInfo
    organizations: list[ConsentOrganization]
    missing_oidc_scope: list[str] = Field(alias="missingOIDCScope")
    missing_resource_scopes: list[MissingResourceScopes]
    redirect_uri: str


class ConsentRequest(_Schema):
    organization_ids: list[str] | None = None


class ConsentRedirect(_Schema):
    redirect_to: str
