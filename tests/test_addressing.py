import pytest

import kdeploy.addressing as addressing
from kdeploy.errors import AddressingError, InvalidApiVersion

BASE = "https://1.2.3.4"


class TestApiPath:
    def test_core_and_named_groups(self):
        assert addressing.api_path("v1") == "/api/v1"
        assert addressing.api_path("apps/v1") == "/apis/apps/v1"
        assert addressing.api_path("batch/v1beta1") == "/apis/batch/v1beta1"
        assert (
            addressing.api_path("networking.istio.io/v1alpha3")
            == "/apis/networking.istio.io/v1alpha3"
        )

    @pytest.mark.parametrize(
        "api_version", ["", "apps", "apps/", "/v1", "apps/v1/extra", "Apps/v1", "1"]
    )
    def test_invalid(self, api_version):
        with pytest.raises(InvalidApiVersion):
            addressing.api_path(api_version)

    def test_invalid_is_addressing_error(self):
        with pytest.raises(AddressingError):
            addressing.api_path("foo")


class TestResourceName:
    @pytest.mark.parametrize(
        "kind, name",
        [
            ("Pod", "pods"),
            ("Namespace", "namespaces"),
            ("ConfigMap", "configmaps"),
            ("Ingress", "ingresses"),
            ("NetworkPolicy", "networkpolicies"),
            ("StorageClass", "storageclasses"),
            ("Endpoints", "endpoints"),
            ("Gateway", "gateways"),
            ("Deployment", "deployments"),
        ],
    )
    def test_plurals(self, kind, name):
        assert addressing.resource_name(kind) == name


class TestResourceUrls:
    def test_namespaced(self):
        urls = addressing.resource_urls(BASE, "apps/v1", "Deployment", "demo", "ns")
        collection = f"{BASE}/apis/apps/v1/namespaces/ns/deployments"
        assert urls.collection == collection
        assert urls.item == f"{collection}/demo"

    def test_core_namespaced(self):
        urls = addressing.resource_urls(BASE, "v1", "ConfigMap", "cm", "default")
        assert urls.collection == f"{BASE}/api/v1/namespaces/default/configmaps"
        assert urls.item == f"{BASE}/api/v1/namespaces/default/configmaps/cm"

    def test_cluster_scoped(self):
        # Cluster scoped resources ignore the namespace.
        urls = addressing.resource_urls(BASE, "v1", "Namespace", "foo", "default")
        assert urls.collection == f"{BASE}/api/v1/namespaces"
        assert urls.item == f"{BASE}/api/v1/namespaces/foo"

        urls = addressing.resource_urls(
            BASE, "rbac.authorization.k8s.io/v1", "ClusterRole", "admin", "default"
        )
        assert urls.item == f"{BASE}/apis/rbac.authorization.k8s.io/v1/clusterroles/admin"

    def test_trailing_slash(self):
        urls = addressing.resource_urls(BASE + "/", "v1", "Namespace", "foo", "")
        assert urls.item == f"{BASE}/api/v1/namespaces/foo"

    def test_invalid(self):
        with pytest.raises(InvalidApiVersion):
            addressing.resource_urls(BASE, "not a version", "Pod", "demo", "default")

        with pytest.raises(AddressingError):
            addressing.resource_urls(BASE, "v1", "", "demo", "default")

        with pytest.raises(AddressingError):
            addressing.resource_urls(BASE, "v1", "Pod", "", "default")
