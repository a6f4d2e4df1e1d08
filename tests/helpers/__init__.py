"""Test helper utilities for the Vaultline project."""

from tests.helpers.transport import BASE_URL, SecretsEndpoint, endpoint_for, secrets_body

__all__ = ["BASE_URL", "SecretsEndpoint", "endpoint_for", "secrets_body"]
