"""Exponential-backoff wrapper around the whole account-creation sequence."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from azure.core.exceptions import AzureError, HttpResponseError, ServiceRequestError, ServiceResponseError
from azure.mgmt.storage import StorageManagementClient
from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from blob_provisioner.context import OperationContext, ensure_context
from blob_provisioner.errors import OperationTimeoutOrFailureError, SubmissionError
from blob_provisioner.settings import AccountSettings, PollingSettings, RetrySettings
from blob_provisioner.storage.accounts import (
    StorageAccountDescriptor,
    create_storage_account,
    storage_account_exists,
)

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


def _is_transient(exc: BaseException) -> bool:
    """True when the provider error chained under ``exc`` is worth another attempt."""
    cause = exc.__cause__
    if isinstance(cause, (ServiceRequestError, ServiceResponseError)):
        return True
    if isinstance(cause, HttpResponseError):
        return cause.status_code in TRANSIENT_STATUS_CODES
    return False


def _should_retry(
    client: StorageManagementClient,
    resource_group: str,
    account_name: str,
    context: OperationContext,
) -> Callable[[BaseException], bool]:
    def predicate(exc: BaseException) -> bool:
        if isinstance(exc, SubmissionError):
            return _is_transient(exc)
        if isinstance(exc, OperationTimeoutOrFailureError):
            # A resubmit would only trip the name check if the account was created after all.
            try:
                return not storage_account_exists(client, resource_group, account_name, context=context)
            except AzureError as lookup_error:
                logger.warning("cannot look up storage account account=%s: %s", account_name, lookup_error)
                return False
        return False

    return predicate


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning("storage account create attempt %d failed: %s", retry_state.attempt_number, exc)


def create_storage_account_with_retry(
    client: StorageManagementClient,
    account_name: str,
    resource_group: str,
    location: str,
    *,
    settings: Optional[AccountSettings] = None,
    polling: Optional[PollingSettings] = None,
    retry: Optional[RetrySettings] = None,
    context: Optional[OperationContext] = None,
) -> StorageAccountDescriptor:
    """Run ``create_storage_account`` under tenacity.

    Retried:
      - submission errors caused by throttling, server-side or transport faults;
      - long-running-operation failures or timeouts that left no account behind.

    Everything else (client errors, name conflicts, an account that exists
    despite a failed wait, cancellation) is raised on the first occurrence.
    The last error is re-raised once attempts run out.
    """
    retry = retry or RetrySettings()
    context = ensure_context(context)

    retrying = Retrying(
        retry=retry_if_exception(_should_retry(client, resource_group, account_name, context)),
        wait=wait_exponential(multiplier=1, min=retry.wait_min, max=retry.wait_max),
        stop=stop_after_attempt(retry.attempts),
        sleep=context.wait,
        before_sleep=_log_retry,
        reraise=True,
    )
    return retrying(
        create_storage_account,
        client,
        account_name,
        resource_group,
        location,
        settings=settings,
        polling=polling,
        context=context,
    )
