"""Roll sidecar proxies over to a new istio-proxy image."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from kubernetes.client import ApiException

from mesh_commander.exceptions import OperationCancelledError, ProxyResetError

logger = logging.getLogger(__name__)

RESTARTED_AT_ANNOTATION = "kubectl.kubernetes.io/restartedAt"


@dataclass
class ProxyResetConfig:
    image_prefix: str
    image_version: str
    retries_count: int
    delay_between_retries: float
    timeout: float
    interval: float
    kube_client: Any
    debug: bool = False
    container_name: str = "istio-proxy"
    log: logging.Logger = field(default=logger)
    cancel: threading.Event | None = None

    @property
    def expected_image_suffix(self) -> str:
        return f"{self.image_prefix}:{self.image_version}"


class ProxyResetRunner(Protocol):
    def run(self, cfg: ProxyResetConfig) -> None: ...


@dataclass(frozen=True)
class OutdatedPod:
    name: str
    namespace: str
    image: str
    owner_kind: str = ""
    owner_name: str = ""


def split_image(image: str) -> tuple[str, str]:
    """Split an image reference into repository and tag, dropping any digest."""
    name = image.split("@", 1)[0]
    repository, sep, tag = name.rpartition(":")
    if not sep or "/" in tag:
        return name, ""
    return repository, tag


def is_outdated_image(image: str, cfg: ProxyResetConfig) -> bool:
    """True for a proxy image of another version than the expected one.

    Repositories match on their last path segment, so mirrors such as
    ``eu.gcr.io/istio-release/proxyv2`` count as ``istio/proxyv2``.
    """
    repository, tag = split_image(image)
    expected = cfg.image_prefix.rsplit("/", 1)[-1]
    if repository.rsplit("/", 1)[-1] != expected:
        return False
    return tag != cfg.image_version


class DefaultProxyResetRunner:
    """Restart workloads whose sidecars run an outdated proxy image.

    Deployments, StatefulSets and DaemonSets are restarted through their pod
    template; pods without such an owner are deleted. Afterwards the cluster
    is polled until no outdated sidecar remains or the timeout elapses. In
    debug mode the affected pods are only logged.
    """

    def __init__(
        self,
        sleep: Callable[[float], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._sleep = sleep
        self._clock = clock

    def run(self, cfg: ProxyResetConfig) -> None:
        log = cfg.log
        outdated = self.find_outdated(cfg)
        if not outdated:
            log.debug("No sidecar runs an outdated proxy image")
            return
        log.info("Found %d pod(s) with outdated proxy image", len(outdated))

        if cfg.debug:
            for pod in outdated:
                log.info("Would restart %s/%s (%s)", pod.namespace, pod.name, pod.image)
            return

        restarted: set[tuple[str, str, str]] = set()
        for pod in outdated:
            target = _restart_target(pod)
            if target in restarted:
                continue
            self._with_retries(cfg, lambda p=pod: self._restart(cfg, p))
            restarted.add(target)

        self._wait_until_updated(cfg)

    def find_outdated(self, cfg: ProxyResetConfig) -> list[OutdatedPod]:
        pods = cfg.kube_client.list_pods()
        result: list[OutdatedPod] = []
        for pod in pods:
            meta = pod.metadata
            if meta is None or meta.deletion_timestamp is not None:
                continue
            if pod.status is not None and pod.status.phase in ("Succeeded", "Failed"):
                continue
            for container in (pod.spec.containers if pod.spec else None) or []:
                if container.name != cfg.container_name:
                    continue
                if is_outdated_image(container.image or "", cfg):
                    owner_kind, owner_name = _controller_of(meta)
                    result.append(OutdatedPod(
                        name=meta.name,
                        namespace=meta.namespace,
                        image=container.image,
                        owner_kind=owner_kind,
                        owner_name=owner_name,
                    ))
        return result

    def _restart(self, cfg: ProxyResetConfig, pod: OutdatedPod) -> None:
        k8s = cfg.kube_client
        kind, name = pod.owner_kind, pod.owner_name
        if kind == "ReplicaSet":
            kind, name = _controller_of(
                k8s.apps_v1.read_namespaced_replica_set(name=name, namespace=pod.namespace).metadata
            )
            if not kind:
                # Bare ReplicaSet
                kind, name = "ReplicaSet", pod.owner_name

        patch = {"spec": {"template": {"metadata": {"annotations": {
            RESTARTED_AT_ANNOTATION: datetime.now(timezone.utc).isoformat(),
        }}}}}
        if kind == "Deployment":
            k8s.apps_v1.patch_namespaced_deployment(name=name, namespace=pod.namespace, body=patch)
        elif kind == "StatefulSet":
            k8s.apps_v1.patch_namespaced_stateful_set(name=name, namespace=pod.namespace, body=patch)
        elif kind == "DaemonSet":
            k8s.apps_v1.patch_namespaced_daemon_set(name=name, namespace=pod.namespace, body=patch)
        else:
            k8s.core_v1.delete_namespaced_pod(name=pod.name, namespace=pod.namespace)
            cfg.log.debug("Deleted pod %s/%s", pod.namespace, pod.name)
            return
        cfg.log.debug("Restarted %s %s/%s", kind, pod.namespace, name)

    def _with_retries(self, cfg: ProxyResetConfig, action: Callable[[], None]) -> None:
        attempts = max(cfg.retries_count, 1)
        for attempt in range(1, attempts + 1):
            _check_cancelled(cfg)
            try:
                action()
                return
            except ApiException as e:
                if e.status == 404:
                    # Workload vanished in the meantime, nothing to restart.
                    return
                if attempt == attempts:
                    raise ProxyResetError(f"Restart failed after {attempts} attempt(s): {e.reason}") from e
                cfg.log.debug("Restart attempt %d failed: %s", attempt, e.reason)
                self._pause(cfg, cfg.delay_between_retries)

    def _wait_until_updated(self, cfg: ProxyResetConfig) -> None:
        deadline = self._clock() + cfg.timeout
        while True:
            remaining = self.find_outdated(cfg)
            if not remaining:
                cfg.log.info("All sidecars run %s", cfg.expected_image_suffix)
                return
            if self._clock() >= deadline:
                names = ", ".join(f"{p.namespace}/{p.name}" for p in remaining[:5])
                raise ProxyResetError(
                    f"{len(remaining)} pod(s) still run an outdated proxy after {cfg.timeout}s: {names}"
                )
            self._pause(cfg, cfg.interval)

    def _pause(self, cfg: ProxyResetConfig, seconds: float) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
            _check_cancelled(cfg)
        elif cfg.cancel is not None:
            if cfg.cancel.wait(seconds):
                raise OperationCancelledError("Proxy reset cancelled")
        else:
            time.sleep(seconds)


def _controller_of(meta: Any) -> tuple[str, str]:
    for ref in (meta.owner_references if meta is not None else None) or []:
        if ref.controller:
            return ref.kind, ref.name
    return "", ""


def _restart_target(pod: OutdatedPod) -> tuple[str, str, str]:
    if pod.owner_kind:
        return (pod.namespace, pod.owner_kind, pod.owner_name)
    return (pod.namespace, "Pod", pod.name)


def _check_cancelled(cfg: ProxyResetConfig) -> None:
    if cfg.cancel is not None and cfg.cancel.is_set():
        raise OperationCancelledError("Proxy reset cancelled")
