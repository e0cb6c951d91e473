"""Helpers for provisioning Azure storage accounts and uploading files to blob containers."""

from .context import OperationContext
from .errors import ProvisioningError

__all__ = ["OperationContext", "ProvisioningError"]
