"""Version-aware control-plane operations."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol

from mesh_commander.config.settings import Settings, settings as default_settings
from mesh_commander.core.chart_version import ChartLoader, WorkspaceFactory, target_version_from_workspace
from mesh_commander.core.commander import Commander
from mesh_commander.core.commander_resolver import CommanderResolver
from mesh_commander.core.k8s_client import K8sClient
from mesh_commander.core.proxy_reset import ProxyResetConfig, ProxyResetRunner
from mesh_commander.core.webhook_patcher import PatchResult, RetryPolicy, WebhookPatcher, default_required_rule
from mesh_commander.exceptions import DelegateError, MeshCommanderError, NotFoundError, OperationCancelledError
from mesh_commander.models import Operation
from mesh_commander.models.status import StatusReport
from mesh_commander.utils.chart_loader import load_chart
from mesh_commander.utils.manifest_parser import extract_istio_operator
from mesh_commander.utils.version_compare import parse_version

logger = logging.getLogger(__name__)

ManifestExtractor = Callable[[str], str]


class ClusterClient(Protocol):
    def kubeconfig(self) -> str: ...

    def delete_namespace(self, name: str, propagation_policy: str = ...) -> None: ...


ClientProvider = Callable[[str], K8sClient]


class Performer:
    """Runs install, update, uninstall, proxy reset and version queries.

    Every operation parses the requested version, resolves the commander
    for it and delegates. Commanders are resolved per call and never cached.
    """

    def __init__(
        self,
        resolver: CommanderResolver,
        proxy_reset: ProxyResetRunner,
        client_provider: ClientProvider = K8sClient.from_kubeconfig,
        extract_manifest: ManifestExtractor = extract_istio_operator,
        chart_loader: ChartLoader = load_chart,
        config: Settings | None = None,
        webhook_retry: RetryPolicy | None = None,
    ):
        self.resolver = resolver
        self.proxy_reset = proxy_reset
        self.client_provider = client_provider
        self.extract_manifest = extract_manifest
        self.chart_loader = chart_loader
        self.settings = config or default_settings
        self.webhook_retry = webhook_retry

    def _commander(self, version: str) -> Commander:
        return self.resolver.resolve(parse_version(version, self.settings.version_aliases))

    def install(self, kubeconfig: str, chart_manifest: str, version: str, log: logging.Logger | None = None) -> None:
        log = log or logger
        log.debug("Starting Istio installation...")
        commander = self._commander(version)
        manifest = self.extract_manifest(chart_manifest)
        _delegate(Operation.INSTALL, lambda: commander.install(manifest, kubeconfig, log))
        log.info("Istio in version %s successfully installed", version)

    def update(self, kubeconfig: str, chart_manifest: str, target_version: str, log: logging.Logger | None = None) -> None:
        log = log or logger
        log.debug("Starting Istio update...")
        commander = self._commander(target_version)
        manifest = self.extract_manifest(chart_manifest)
        _delegate(Operation.UPGRADE, lambda: commander.upgrade(manifest, kubeconfig, log))
        log.info("Istio has been updated successfully to version %s", target_version)

    def uninstall(self, cluster: ClusterClient, version: str, log: logging.Logger | None = None) -> None:
        """Uninstall the control plane, then delete the mesh namespace.

        A namespace that is already gone counts as deleted; any other
        deletion failure is raised as a ``delete-namespace`` DelegateError.
        """
        log = log or logger
        log.debug("Starting Istio uninstallation...")
        commander = self._commander(version)
        _delegate(Operation.UNINSTALL, lambda: commander.uninstall(cluster.kubeconfig(), log))
        log.debug("Istio uninstall triggered")

        namespace = self.settings.mesh_namespace
        _delegate(
            Operation.DELETE_NAMESPACE,
            lambda: cluster.delete_namespace(namespace, propagation_policy="Foreground"),
        )
        log.debug("Istio namespace %s deleted", namespace)

    def reset_proxy(
        self,
        kubeconfig: str,
        image_version: str,
        log: logging.Logger | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        log = log or logger
        try:
            kube_client = self.client_provider(kubeconfig)
        except Exception:
            log.error("Could not retrieve KubeClient from Kubeconfig!")
            raise

        s = self.settings
        cfg = ProxyResetConfig(
            image_prefix=s.proxy_image_prefix,
            image_version=f"{image_version}{s.proxy_tag_suffix}",
            retries_count=s.proxy_retries_count,
            delay_between_retries=s.proxy_delay_between_retries,
            timeout=s.proxy_timeout,
            interval=s.proxy_interval,
            container_name=s.proxy_container_name,
            kube_client=kube_client,
            debug=False,
            log=log,
            cancel=cancel,
        )
        _delegate(Operation.RESET_PROXY, lambda: self.proxy_reset.run(cfg))

    def version(
        self,
        workspace: WorkspaceFactory,
        branch: str,
        chart: str,
        kubeconfig: str,
        log: logging.Logger | None = None,
    ) -> StatusReport:
        log = log or logger
        try:
            target_version = target_version_from_workspace(
                workspace, branch, chart, loader=self.chart_loader, log=log,
            )
        except NotFoundError:
            raise
        except (MeshCommanderError, OSError) as e:
            raise NotFoundError(f"Target Version could not be found: {e}") from e

        commander = self._commander(target_version)
        output = _delegate(Operation.VERSION, lambda: commander.version(kubeconfig, log))
        return StatusReport.from_version_output(output, target_version)

    def patch_mutating_webhook(
        self,
        kube_client: K8sClient,
        log: logging.Logger | None = None,
        cancel: threading.Event | None = None,
    ) -> PatchResult:
        log = log or logger
        s = self.settings

        def patch() -> PatchResult:
            patcher = WebhookPatcher(
                kube_client.admissionregistration_v1,
                retry=self.webhook_retry,
                request_timeout=s.request_timeout,
            )
            return patcher.patch(
                s.webhook_candidates, s.webhook_name, default_required_rule(s), cancel=cancel,
            )

        # Selection, conflict and cancellation errors keep their own types.
        result = _delegate(Operation.PATCH_WEBHOOK, patch, keep=(MeshCommanderError,))
        log.debug("Patch has been applied successfully")
        return result


def _delegate(
    operation: Operation,
    call: Callable,
    keep: tuple[type[Exception], ...] = (DelegateError, OperationCancelledError),
):
    """Run a collaborator call, wrapping its failures with the operation name.

    Exceptions of the ``keep`` types propagate unchanged.
    """
    try:
        return call()
    except keep:
        raise
    except Exception as e:
        raise DelegateError(operation.value, e) from e
