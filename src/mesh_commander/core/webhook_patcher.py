"""Conflict-safe patching of the sidecar injector webhook configuration."""

from __future__ import annotations

import logging
import random
import threading
import time
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any, Callable, Protocol, TypeVar

from deepdiff import DeepDiff
from kubernetes import client
from kubernetes.client import ApiException

from mesh_commander.config.settings import Settings, settings
from mesh_commander.exceptions import (
    ConflictExhaustedError,
    EntryNotFoundError,
    OperationCancelledError,
    SelectionError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

HTTP_CONFLICT = 409


class WebhookApi(Protocol):
    def read_mutating_webhook_configuration(self, name: str, **kwargs: Any) -> Any: ...

    def replace_mutating_webhook_configuration(self, name: str, body: Any, **kwargs: Any) -> Any: ...


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff for optimistic-concurrency retries.

    The defaults match the Kubernetes client conflict-retry backoff: five
    attempts, 10ms apart, with 10% jitter.
    """

    steps: int = 5
    duration: float = 0.01
    factor: float = 1.0
    jitter: float = 0.1

    def delays(self) -> Iterator[float]:
        """Yield the pause before each retry (``steps - 1`` values)."""
        duration = self.duration
        for _ in range(max(self.steps - 1, 0)):
            delay = duration
            if self.jitter > 0:
                delay += random.uniform(0, self.jitter * duration)
            yield delay
            duration *= self.factor


@dataclass(frozen=True)
class PatchResult:
    configuration_name: str
    mutated: bool
    attempts: int


def first_success(
    candidates: Sequence[str],
    fetch: Callable[[str], T],
) -> tuple[str, T]:
    """Return ``(candidate, fetch(candidate))`` for the first fetch that succeeds.

    Raises SelectionError chained to the last failure when every candidate fails.
    """
    last_error: Exception | None = None
    for candidate in candidates:
        try:
            return candidate, fetch(candidate)
        except Exception as e:
            logger.debug("Candidate %s could not be fetched: %s", candidate, e)
            last_error = e
    raise SelectionError(
        f"MutatingWebhookConfigurations could not be selected from candidates {list(candidates)}: {last_error}"
    ) from last_error


def default_required_rule(config: Settings | None = None) -> client.V1LabelSelectorRequirement:
    config = config or settings
    return client.V1LabelSelectorRequirement(
        key=config.webhook_rule_key,
        operator=config.webhook_rule_operator,
        values=list(config.webhook_rule_values),
    )


def _rule_dict(rule: Any) -> dict[str, Any]:
    if isinstance(rule, dict):
        return rule
    return rule.to_dict()


def rules_equal(a: Any, b: Any) -> bool:
    """Compare two selector requirements, ignoring the order of their values."""
    return not DeepDiff(_rule_dict(a), _rule_dict(b), ignore_order=True)


def add_namespace_selector_if_missing(
    configuration: Any,
    webhook_name: str,
    required_rule: Any,
) -> bool:
    """Append ``required_rule`` to the named webhook's namespace selector.

    Returns True when the configuration was changed and False when the rule
    was already present.
    """
    for webhook in configuration.webhooks or []:
        if webhook.name != webhook_name:
            continue
        if webhook.namespace_selector is None:
            webhook.namespace_selector = client.V1LabelSelector()
        expressions = list(webhook.namespace_selector.match_expressions or [])
        if any(rules_equal(existing, required_rule) for existing in expressions):
            return False
        expressions.append(required_rule)
        webhook.namespace_selector.match_expressions = expressions
        return True
    metadata = getattr(configuration, "metadata", None)
    raise EntryNotFoundError(webhook_name, getattr(metadata, "name", None) or "<unnamed>")


class WebhookPatcher:
    """Read-modify-write of a MutatingWebhookConfiguration with conflict retry."""

    def __init__(
        self,
        api: WebhookApi,
        retry: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        request_timeout: float | None = None,
    ):
        self.api = api
        self.retry = retry or RetryPolicy()
        self.sleep = sleep
        self.request_timeout = request_timeout if request_timeout is not None else settings.request_timeout

    def patch(
        self,
        candidate_names: Sequence[str],
        webhook_name: str,
        required_rule: Any,
        cancel: threading.Event | None = None,
    ) -> PatchResult:
        """Inject ``required_rule`` into ``webhook_name`` exactly once.

        Each attempt re-reads the configuration, so a retry after a 409
        works on the current server-side version. Only conflicts are
        retried; every other failure propagates immediately.
        """
        delays = self.retry.delays()
        attempt = 0
        while True:
            attempt += 1
            _check_cancelled(cancel)
            name, configuration = first_success(candidate_names, self._read)
            mutated = add_namespace_selector_if_missing(configuration, webhook_name, required_rule)
            try:
                self.api.replace_mutating_webhook_configuration(
                    name, configuration, _request_timeout=self.request_timeout,
                )
            except ApiException as e:
                if e.status != HTTP_CONFLICT:
                    raise
                delay = next(delays, None)
                if delay is None:
                    raise ConflictExhaustedError(name, attempt) from e
                logger.debug("Conflict updating %s (attempt %d), retrying", name, attempt)
                _check_cancelled(cancel)
                self.sleep(delay)
                continue
            logger.debug("Patch has been applied successfully to %s", name)
            return PatchResult(configuration_name=name, mutated=mutated, attempts=attempt)

    def _read(self, name: str) -> Any:
        return self.api.read_mutating_webhook_configuration(
            name, _request_timeout=self.request_timeout,
        )


def _check_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelledError("Webhook patch cancelled")
