from pathlib import Path
from typing import Tuple

import square.k8s
from square.dtypes import ConnectionParameters, K8sConfig

from kdeploy.models import Environment


def create_cluster_config(kubeconf: Path, context: str) -> Tuple[K8sConfig, bool]:
    """Return the authenticated K8s config for `context` in `kubeconf`."""
    # Parse Kubeconfig file.
    cfg, err = square.k8s.load_auto_config(kubeconf, context)
    if err:
        return K8sConfig(), True

    # Create HTTPX client.
    params = ConnectionParameters(read=600, write=600, pool=600)
    cfg, err = square.k8s.create_httpx_client(cfg, params)
    if err:
        return K8sConfig(), True

    # Set the base URL to the K8s API server for convenience.
    cfg.client.base_url = cfg.url

    return cfg, False


def environment(k8sconfig: K8sConfig, namespace: str) -> Environment:
    """Return the deployment environment for the cluster in `k8sconfig`."""
    return Environment(api_server_url=k8sconfig.url, default_namespace=namespace)
