"""Compute the K8s API URLs of a resource.

K8s serves the core group under `/api/{version}` and every named group under
`/apis/{group}/{version}`. Namespaced resources add a `/namespaces/{ns}`
segment, cluster scoped ones (eg `Namespace`, `ClusterRole`) do not.

Everything in here is a pure function of its arguments. In particular, we do
not ask the API server for its resource list but derive the resource name
from the kind.

"""

import re
from typing import Dict, Tuple

from kdeploy.errors import AddressingError, InvalidApiVersion
from kdeploy.models import ResourceUrls

# Eg `v1`, `apps/v1`, `networking.istio.io/v1beta1`.
RE_API_VERSION = re.compile(
    r"^(?:(?P<group>[a-z0-9]([-a-z0-9.]*[a-z0-9])?)/)?(?P<version>v[0-9]+[a-z0-9]*)$"
)

# Kinds that do not live inside a namespace.
CLUSTER_SCOPED = frozenset(
    (
        "APIService",
        "CertificateSigningRequest",
        "ClusterIssuer",
        "ClusterRole",
        "ClusterRoleBinding",
        "ComponentStatus",
        "CSIDriver",
        "CSINode",
        "CustomResourceDefinition",
        "FlowSchema",
        "IngressClass",
        "MutatingWebhookConfiguration",
        "Namespace",
        "Node",
        "PersistentVolume",
        "PriorityClass",
        "PriorityLevelConfiguration",
        "RuntimeClass",
        "StorageClass",
        "ValidatingAdmissionPolicy",
        "ValidatingAdmissionPolicyBinding",
        "ValidatingWebhookConfiguration",
        "VolumeAttachment",
    )
)

# Kinds whose resource name does not follow the English plural rules below.
IRREGULAR_PLURALS: Dict[str, str] = {
    "Endpoints": "endpoints",
    "PodMetrics": "pods",
    "NodeMetrics": "nodes",
}


def split_api_version(api_version: str) -> Tuple[str, str]:
    """Return the `(group, version)` of `api_version`.

    The group of core resources is the empty string.

    """
    match = RE_API_VERSION.match(api_version)
    if match is None:
        raise InvalidApiVersion(f"invalid apiVersion <{api_version}>")
    return match.group("group") or "", match.group("version")


def api_path(api_version: str) -> str:
    """Return the path prefix for `api_version`, eg `/apis/apps/v1`."""
    group, version = split_api_version(api_version)
    if group == "":
        return f"/api/{version}"
    return f"/apis/{group}/{version}"


def resource_name(kind: str) -> str:
    """Return the lower case plural that K8s uses in the URL for `kind`."""
    if kind in IRREGULAR_PLURALS:
        return IRREGULAR_PLURALS[kind]

    name = kind.lower()
    if name.endswith(("s", "x", "z", "ch", "sh")):
        return name + "es"
    if name.endswith("y") and name[-2:-1] not in ("a", "e", "i", "o", "u", ""):
        return name[:-1] + "ies"
    return name + "s"


def is_namespaced(kind: str) -> bool:
    return kind not in CLUSTER_SCOPED


def resource_urls(
    base_url: str, api_version: str, kind: str, name: str, namespace: str
) -> ResourceUrls:
    """Return the collection and item URL of a resource.

    Inputs:
        base_url: str
            K8s API server, eg `https://1.2.3.4`.
        api_version: str
            Eg `v1` or `apps/v1`.
        kind: str
            Eg `Deployment`.
        name: str
            Name of the resource.
        namespace: str
            Ignored for cluster scoped resources.

    """
    if not kind:
        raise AddressingError("resource has no kind")
    if not name:
        raise AddressingError(f"{kind} resource has no name")

    prefix = base_url.rstrip("/") + api_path(api_version)
    plural = resource_name(kind)

    if is_namespaced(kind) and namespace:
        collection = f"{prefix}/namespaces/{namespace}/{plural}"
    else:
        collection = f"{prefix}/{plural}"

    return ResourceUrls(collection=collection, item=f"{collection}/{name}")
