"""
Tests for splitting the prompt's missing scopes and filtering implicit OIDC scopes.
"""
from consent_server.scopes import (
    ORGANIZATIONS_SCOPE,
    RESERVED_ORGANIZATION_RESOURCE,
    filter_consentable_oidc_scopes,
    get_missing_scopes,
    is_organization_resource,
)


def _prompt(details):
    return {"name": "consent", "details": details}


def test_get_missing_scopes_reads_both_parts():
    missing = get_missing_scopes(
        _prompt(
            {
                "missingOIDCScope": ["openid", "profile"],
                "missingResourceScopes": {"https://api.example.com/orders": ["read:orders"]},
            }
        )
    )
    assert missing.missing_oidc_scope == ["openid", "profile"]
    assert missing.missing_resource_scopes == {"https://api.example.com/orders": ["read:orders"]}


def test_get_missing_scopes_absent_parts_are_empty():
    missing = get_missing_scopes(_prompt({}))
    assert missing.missing_oidc_scope == []
    assert missing.missing_resource_scopes == {}
    assert get_missing_scopes(None).missing_resource_scopes == {}


def test_partition_separates_organization_pseudo_resource():
    missing = get_missing_scopes(
        _prompt(
            {
                "missingResourceScopes": {
                    "https://api.example.com/orders": ["read:orders"],
                    RESERVED_ORGANIZATION_RESOURCE: ["read:members"],
                    "https://api.example.com/billing": ["read:invoices"],
                }
            }
        )
    )
    assert missing.organization_scopes == ["read:members"]
    assert list(missing.resource_scopes) == ["https://api.example.com/orders", "https://api.example.com/billing"]
    # Full mapping keeps prompt order, pseudo-resource included
    assert list(missing.missing_resource_scopes)[1] == RESERVED_ORGANIZATION_RESOURCE


def test_partition_does_not_check_existence():
    missing = get_missing_scopes(_prompt({"missingResourceScopes": {"https://unknown.example.com": ["x"]}}))
    assert missing.resource_scopes == {"https://unknown.example.com": ["x"]}
    assert missing.organization_scopes == []


def test_is_organization_resource():
    assert is_organization_resource(RESERVED_ORGANIZATION_RESOURCE)
    assert not is_organization_resource("https://api.example.com/orders")


def test_filter_consentable_oidc_scopes_drops_implicit_scopes():
    scopes = ["openid", "profile", "offline_access", ORGANIZATIONS_SCOPE, "email"]
    assert filter_consentable_oidc_scopes(scopes) == ["profile", ORGANIZATIONS_SCOPE, "email"]
