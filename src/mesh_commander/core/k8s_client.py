"""Kubernetes API wrapper."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from kubernetes import client, config
from kubernetes.client import ApiException

from mesh_commander.config.settings import settings
from mesh_commander.exceptions import MeshCommanderError

logger = logging.getLogger(__name__)


class K8sClient:
    """Thin wrapper around the Kubernetes Python client."""

    def __init__(
        self,
        context: str | None = None,
        kubeconfig: str | None = None,
        api_client: client.ApiClient | None = None,
    ):
        self.context = context
        self._kubeconfig = kubeconfig
        self._core_v1: client.CoreV1Api | None = None
        self._apps_v1: client.AppsV1Api | None = None
        self._admissionregistration_v1: client.AdmissionregistrationV1Api | None = None
        self._api_client = api_client

    @classmethod
    def from_kubeconfig(cls, kubeconfig: str) -> K8sClient:
        """Build a client from raw kubeconfig content."""
        if not kubeconfig or not kubeconfig.strip():
            raise MeshCommanderError("Kubeconfig is empty")
        return cls(kubeconfig=kubeconfig)

    def _load_config(self) -> client.ApiClient:
        if self._api_client is not None:
            return self._api_client
        cfg = client.Configuration()
        if self._kubeconfig is not None:
            config.load_kube_config_from_dict(
                yaml.safe_load(self._kubeconfig),
                context=self.context,
                client_configuration=cfg,
            )
        else:
            try:
                config.load_kube_config(context=self.context, client_configuration=cfg)
            except config.ConfigException:
                config.load_incluster_config(client_configuration=cfg)
        # Prevent indefinite hangs on unreachable clusters
        cfg.retries = 1
        self._api_client = client.ApiClient(configuration=cfg)
        return self._api_client

    @property
    def core_v1(self) -> client.CoreV1Api:
        if self._core_v1 is None:
            self._core_v1 = client.CoreV1Api(api_client=self._load_config())
        return self._core_v1

    @property
    def apps_v1(self) -> client.AppsV1Api:
        if self._apps_v1 is None:
            self._apps_v1 = client.AppsV1Api(api_client=self._load_config())
        return self._apps_v1

    @property
    def admissionregistration_v1(self) -> client.AdmissionregistrationV1Api:
        if self._admissionregistration_v1 is None:
            self._admissionregistration_v1 = client.AdmissionregistrationV1Api(
                api_client=self._load_config()
            )
        return self._admissionregistration_v1

    def kubeconfig(self) -> str:
        """Return kubeconfig content for handing to istioctl."""
        if self._kubeconfig is not None:
            content = self._kubeconfig
        else:
            location = config.kube_config.KUBE_CONFIG_DEFAULT_LOCATION.split(os.pathsep)[0]
            path = Path(location).expanduser()
            if not path.exists():
                raise MeshCommanderError(f"No kubeconfig available at {path}")
            content = path.read_text(encoding="utf-8")
        if self.context:
            data = yaml.safe_load(content) or {}
            data["current-context"] = self.context
            content = yaml.safe_dump(data, default_flow_style=False)
        return content

    def delete_namespace(self, name: str, propagation_policy: str = "Foreground") -> None:
        """Delete a namespace; a namespace that is already gone counts as deleted."""
        try:
            self.core_v1.delete_namespace(
                name=name,
                body=client.V1DeleteOptions(propagation_policy=propagation_policy),
                _request_timeout=settings.request_timeout,
            )
        except ApiException as e:
            if e.status == 404:
                logger.debug("Namespace %s already deleted", name)
                return
            raise

    def list_pods(self, label_selector: str | None = None) -> list[Any]:
        kwargs: dict[str, Any] = {"_request_timeout": settings.request_timeout}
        if label_selector:
            kwargs["label_selector"] = label_selector
        return self.core_v1.list_pod_for_all_namespaces(**kwargs).items
