"""Shared fixtures and fakes for Mesh Commander tests."""

from __future__ import annotations

import logging
from typing import Any, Callable

import pytest
from kubernetes import client
from kubernetes.client import ApiException

from mesh_commander.core.commander import Commander
from mesh_commander.utils.version_compare import MeshVersion

WEBHOOK_NAME = "auto.sidecar-injector.istio.io"


def make_rule(key: str = "gardener.cloud/purpose", operator: str = "NotIn", values: list[str] | None = None) -> client.V1LabelSelectorRequirement:
    return client.V1LabelSelectorRequirement(
        key=key, operator=operator, values=["kube-system"] if values is None else values,
    )


def make_configuration(name: str, webhooks: dict[str, list[dict]]) -> client.V1MutatingWebhookConfiguration:
    return client.V1MutatingWebhookConfiguration(
        metadata=client.V1ObjectMeta(name=name, resource_version="1"),
        webhooks=[
            client.V1MutatingWebhook(
                name=webhook_name,
                admission_review_versions=["v1"],
                client_config=client.AdmissionregistrationV1WebhookClientConfig(url="https://istiod.istio-system:443/inject"),
                side_effects="None",
                namespace_selector=client.V1LabelSelector(
                    match_expressions=[client.V1LabelSelectorRequirement(**rule) for rule in rules],
                ),
            )
            for webhook_name, rules in webhooks.items()
        ],
    )


class FakeWebhookApi:
    """In-memory MutatingWebhookConfiguration API.

    The first ``conflicts`` replace calls fail with HTTP 409; ``on_conflict``
    runs before each injected conflict to simulate a concurrent writer.
    """

    def __init__(
        self,
        configurations: dict[str, dict[str, list[dict]]],
        conflicts: int = 0,
        on_conflict: Callable[[FakeWebhookApi], None] | None = None,
    ):
        self.configurations = configurations
        self.conflicts = conflicts
        self.on_conflict = on_conflict
        self.reads: list[str] = []
        self.replaces: list[str] = []

    def read_mutating_webhook_configuration(self, name: str, **kwargs: Any) -> client.V1MutatingWebhookConfiguration:
        self.reads.append(name)
        if name not in self.configurations:
            raise ApiException(status=404, reason="Not Found")
        return make_configuration(name, self.configurations[name])

    def replace_mutating_webhook_configuration(self, name: str, body: Any, **kwargs: Any) -> Any:
        self.replaces.append(name)
        if self.conflicts > 0:
            self.conflicts -= 1
            if self.on_conflict is not None:
                self.on_conflict(self)
            raise ApiException(status=409, reason="Conflict")
        self.configurations[name] = {
            wh.name: [
                rule.to_dict()
                for rule in ((wh.namespace_selector.match_expressions or []) if wh.namespace_selector else [])
            ]
            for wh in body.webhooks
        }
        return body

    def rules(self, configuration: str, webhook: str = WEBHOOK_NAME) -> list[dict]:
        return self.configurations[configuration][webhook]


class FakeCommander(Commander):
    """Commander that records calls instead of running istioctl."""

    def __init__(self, version: MeshVersion, version_output: bytes = b"", fail: Exception | None = None):
        self.mesh_version = version
        self.version_output = version_output
        self.fail = fail
        self.calls: list[tuple] = []

    def _record(self, *call: Any) -> None:
        self.calls.append(call)
        if self.fail is not None:
            raise self.fail

    def install(self, manifest: str, kubeconfig: str, log: logging.Logger) -> None:
        self._record("install", manifest, kubeconfig)

    def upgrade(self, manifest: str, kubeconfig: str, log: logging.Logger) -> None:
        self._record("upgrade", manifest, kubeconfig)

    def uninstall(self, kubeconfig: str, log: logging.Logger) -> None:
        self._record("uninstall", kubeconfig)

    def version(self, kubeconfig: str, log: logging.Logger) -> bytes:
        self._record("version", kubeconfig)
        return self.version_output


@pytest.fixture
def log() -> logging.Logger:
    return logging.getLogger("mesh_commander.tests")
