"""Identity helpers for the Azure resource-management plane."""

from .token import StaticTokenCredential, get_resource_management_token, management_scope

__all__ = ["StaticTokenCredential", "get_resource_management_token", "management_scope"]
