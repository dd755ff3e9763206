"""
Reserved scope and resource names, and the split of the prompt's missing scopes.

The prompt reports missing scopes in two parts: plain OIDC scope names, and a
mapping of resource indicator -> scope names. One indicator is reserved for the
organizations pseudo-resource; every other indicator names a real resource.
"""
from dataclasses import dataclass, field
from typing import Any

# Indicator of the organizations pseudo-resource. Its scopes are organization scopes.
RESERVED_ORGANIZATION_RESOURCE = "urn:logto:resource:organizations"

# OIDC scope requesting the user's organizations
ORGANIZATIONS_SCOPE = "urn:logto:scope:organizations"

# Never shown on the consent page; granted implicitly
IMPLICIT_OIDC_SCOPES = frozenset({"openid", "offline_access"})


def is_organization_resource(indicator: str) -> bool:
    return indicator == RESERVED_ORGANIZATION_RESOURCE


@dataclass
class MissingScopes:
    missing_oidc_scope: list[str] = field(default_factory=list)
    # indicator -> scope names, in prompt order; includes the organizations pseudo-resource
    missing_resource_scopes: dict[str, list[str]] = field(default_factory=dict)

    @property
    def organization_scopes(self) -> list[str]:
        """Scope names missing on the organizations pseudo-resource."""
        return list(self.missing_resource_scopes.get(RESERVED_ORGANIZATION_RESOURCE, []))

    @property
    def resource_scopes(self) -> dict[str, list[str]]:
        """Missing scope names of real resources only."""
        return {
            indicator: list(names)
            for indicator, names in self.missing_resource_scopes.items()
            if not is_organization_resource(indicator)
        }


def get_missing_scopes(prompt: dict[str, Any] | None) -> MissingScopes:
    """Read missing OIDC and resource scopes from prompt details. Absent parts are empty."""
    details = (prompt or {}).get("details") or {}
    oidc = details.get("missingOIDCScope") or []
    resources = details.get("missingResourceScopes") or {}
    return MissingScopes(
        missing_oidc_scope=[str(s) for s in oidc],
        missing_resource_scopes={str(k): [str(s) for s in v] for k, v in resources.items()},
    )


def filter_consentable_oidc_scopes(scopes: list[str]) -> list[str]:
    """Drop openid / offline_access; they never need explicit consent."""
    return [s for s in scopes if s not in IMPLICIT_OIDC_SCOPES]
