"""Resource-management token acquisition for a service principal.

The token is requested once per call and never cached here; refresh is the
caller's (or the identity library's) concern.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from azure.core.credentials import AccessToken, TokenCredential
from azure.core.exceptions import AzureError
from azure.identity import CertificateCredential, ClientSecretCredential

from blob_provisioner.context import OperationContext, ensure_context
from blob_provisioner.errors import AuthenticationError

logger = logging.getLogger(__name__)


def management_scope(arm_endpoint: str) -> str:
    """Return the ``.default`` scope for an ARM endpoint."""
    return f"{arm_endpoint.rstrip('/')}/.default"


def _build_credential(
    tenant_id: str,
    client_id: str,
    client_secret: Optional[str],
    cert_path: Optional[str],
    authority: Optional[str],
) -> TokenCredential:
    """Return a certificate credential when ``cert_path`` is set, otherwise a secret credential."""
    kwargs = {"authority": authority} if authority else {}

    if cert_path:
        return CertificateCredential(
            tenant_id=tenant_id,
            client_id=client_id,
            certificate_path=cert_path,
            **kwargs,
        )

    if not client_secret:
        raise ValueError("Service principal auth requires either client_secret or cert_path.")

    return ClientSecretCredential(
        tenant_id=tenant_id,
        client_id=client_id,
        client_secret=client_secret,
        **kwargs,
    )


def get_resource_management_token(
    tenant_id: str,
    client_id: str,
    client_secret: Optional[str],
    arm_endpoint: str,
    cert_path: Optional[str] = None,
    *,
    authority: Optional[str] = None,
    context: Optional[OperationContext] = None,
) -> AccessToken:
    """Exchange service-principal credentials for a bearer token scoped to ``arm_endpoint``.

    Raises:
        AuthenticationError: the provider rejected or could not be reached, the certificate
            could not be read, or the returned token was empty.
        CancelledError: ``context`` was cancelled before the exchange.
    """
    context = ensure_context(context)
    context.check("token acquisition")

    try:
        credential = _build_credential(tenant_id, client_id, client_secret, cert_path, authority)
    except (OSError, ValueError) as exc:
        raise AuthenticationError(f"Cannot generate token, credential setup failed: {exc}") from exc

    scope = management_scope(arm_endpoint)
    logger.info("requesting management token tenant_id=%s client_id=%s scope=%s", tenant_id, client_id, scope)
    try:
        token = credential.get_token(scope)
    except AzureError as exc:
        raise AuthenticationError(f"Cannot generate token. Error details: {exc}") from exc

    context.check("token acquisition")
    if token is None or not token.token:
        raise AuthenticationError("Cannot generate token. Identity provider returned an empty token.")

    logger.debug("management token acquired expires_on=%s", token.expires_on)
    return token


class StaticTokenCredential:
    """TokenCredential that hands out one pre-acquired token for every scope."""

    def __init__(self, token: AccessToken) -> None:
        self._token = token

    def get_token(self, *scopes: str, **kwargs: Any) -> AccessToken:  # noqa: ARG002
        return self._token
