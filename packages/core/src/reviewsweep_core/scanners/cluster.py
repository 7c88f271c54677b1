from __future__ import annotations

from kubernetes import client as k8s_client
from kubernetes import config as k8s_config

from reviewsweep_core.config import ClusterConfig
from reviewsweep_core.scanners.base import NamingRule, ResourceScanner
from reviewsweep_core.scope import CancelScope


class KubernetesScanner(ResourceScanner):
    """Review namespaces: ``mirera-2-42-review-<id>``."""

    label = "k8s"
    rule = NamingRule(pattern=r"^mirera-2-42-review-", index=4)

    def __init__(self, cluster: ClusterConfig | None = None, api=None):
        self.cluster = cluster or ClusterConfig.from_env()
        self._api = api

    def _core_api(self):
        if self._api is None:
            if self.cluster.kubeconfig:
                api_client = k8s_config.new_client_from_config(
                    config_file=self.cluster.kubeconfig, context=self.cluster.context
                )
            else:
                k8s_config.load_incluster_config()
                api_client = k8s_client.ApiClient()
            self._api = k8s_client.CoreV1Api(api_client)
        return self._api

    def list_names(self, scope: CancelScope) -> list[str]:
        kwargs = {}
        remaining = scope.remaining()
        if remaining is not None:
            kwargs["_request_timeout"] = remaining
        namespaces = self._core_api().list_namespace(**kwargs)
        return [ns.metadata.name for ns in namespaces.items]
