"""Tests for the kubernetes-backed resource client."""

from unittest.mock import MagicMock

import pytest
import urllib3
from kubernetes import client
from kubernetes.client.rest import ApiException

from kubelink.config.provider import ClusterConfig
from kubelink.errors import ClusterApiError, ConflictError, NotFoundError
from kubelink.modules.cluster import (
    KubernetesResourceClient,
    create_api_client,
    create_resource_clients,
    translate_api_exception,
)
from kubelink.modules.cluster import client as cluster_client
from kubelink.modules.manifest import ResourceKind


@pytest.fixture
def api_client():
    """ApiClient mock whose serializer passes dicts through."""
    api_client = MagicMock()
    api_client.sanitize_for_serialization.side_effect = lambda obj: obj
    return api_client


def make_client(kind, api_client):
    resource_client = KubernetesResourceClient(kind, api_client, namespace="default")
    resource_client._api = MagicMock()
    return resource_client


class TestTranslateApiException:
    """Test ApiException mapping."""

    def test_not_found(self):
        error = translate_api_exception(ApiException(status=404, reason="Not Found"))
        assert isinstance(error, NotFoundError)
        assert error.status == 404

    def test_conflict(self):
        error = translate_api_exception(ApiException(status=409, reason="Conflict"))
        assert isinstance(error, ConflictError)

    def test_other_status(self):
        error = translate_api_exception(ApiException(status=403, reason="Forbidden"))
        assert type(error) is ClusterApiError
        assert error.reason == "Forbidden"
        assert "403" in str(error)


class TestKubernetesResourceClient:
    """Test verb routing and error translation."""

    def test_api_group_selection(self, api_client):
        assert isinstance(
            KubernetesResourceClient(ResourceKind.DEPLOYMENT, api_client)._api, client.AppsV1Api
        )
        assert isinstance(
            KubernetesResourceClient(ResourceKind.CONFIG_MAP, api_client)._api, client.CoreV1Api
        )

    @pytest.mark.asyncio
    async def test_get_reads_namespaced_object(self, api_client):
        resource_client = make_client(ResourceKind.CONFIG_MAP, api_client)
        resource_client._api.read_namespaced_config_map.return_value = {"metadata": {"name": "c"}}

        result = await resource_client.get("c")

        assert result == {"metadata": {"name": "c"}}
        resource_client._api.read_namespaced_config_map.assert_called_once_with("c", "default")

    @pytest.mark.asyncio
    async def test_get_not_found(self, api_client):
        resource_client = make_client(ResourceKind.DEPLOYMENT, api_client)
        resource_client._api.read_namespaced_deployment.side_effect = ApiException(
            status=404, reason="Not Found"
        )

        with pytest.raises(NotFoundError):
            await resource_client.get("web")

    @pytest.mark.asyncio
    async def test_replace_conflict(self, api_client):
        resource_client = make_client(ResourceKind.SERVICE, api_client)
        resource_client._api.replace_namespaced_service.side_effect = ApiException(
            status=409, reason="Conflict"
        )

        with pytest.raises(ConflictError):
            await resource_client.replace("web", {"metadata": {"name": "web"}})

    @pytest.mark.asyncio
    async def test_create_passes_body(self, api_client):
        resource_client = make_client(ResourceKind.SECRET, api_client)
        body = {"metadata": {"name": "creds"}}
        resource_client._api.create_namespaced_secret.return_value = body

        assert await resource_client.create(body) == body
        resource_client._api.create_namespaced_secret.assert_called_once_with("default", body)

    @pytest.mark.asyncio
    async def test_delete_uses_foreground_propagation(self, api_client):
        resource_client = make_client(ResourceKind.DEPLOYMENT, api_client)

        await resource_client.delete("web")

        resource_client._api.delete_namespaced_deployment.assert_called_once_with(
            "web", "default", propagation_policy="Foreground"
        )

    @pytest.mark.asyncio
    async def test_list_returns_items(self, api_client):
        resource_client = make_client(ResourceKind.POD, api_client)
        resource_client._api.list_namespaced_pod.return_value = MagicMock(
            items=[{"metadata": {"name": "a"}}, {"metadata": {"name": "b"}}]
        )

        items = await resource_client.list()

        assert [item["metadata"]["name"] for item in items] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_deserialization_errors_become_api_errors(self, api_client):
        resource_client = make_client(ResourceKind.DEPLOYMENT, api_client)
        resource_client._api.list_namespaced_deployment.side_effect = ValueError(
            "Invalid value for `selector`, must not be `None`"
        )

        with pytest.raises(ClusterApiError):
            await resource_client.list()

    @pytest.mark.asyncio
    async def test_network_errors_become_api_errors(self, api_client):
        resource_client = make_client(ResourceKind.POD, api_client)
        resource_client._api.list_namespaced_pod.side_effect = urllib3.exceptions.MaxRetryError(
            None, "/api/v1/namespaces/default/pods"
        )

        with pytest.raises(ClusterApiError):
            await resource_client.list()


def test_create_resource_clients_covers_every_kind(api_client):
    clients = create_resource_clients(api_client)

    assert set(clients) == set(ResourceKind)
    assert all(c.namespace == "default" for c in clients.values())


def test_create_api_client_in_cluster(monkeypatch):
    load_incluster = MagicMock()
    load_kube_config = MagicMock()
    monkeypatch.setattr(cluster_client.config, "load_incluster_config", load_incluster)
    monkeypatch.setattr(cluster_client.config, "load_kube_config", load_kube_config)

    create_api_client(ClusterConfig(kubeconfig_path=None))

    load_incluster.assert_called_once()
    load_kube_config.assert_not_called()


def test_create_api_client_from_kubeconfig(monkeypatch):
    load_incluster = MagicMock()
    load_kube_config = MagicMock()
    monkeypatch.setattr(cluster_client.config, "load_incluster_config", load_incluster)
    monkeypatch.setattr(cluster_client.config, "load_kube_config", load_kube_config)

    create_api_client(ClusterConfig(kubeconfig_path="/tmp/kubeconfig"))

    load_kube_config.assert_called_once_with(config_file="/tmp/kubeconfig")
    load_incluster.assert_not_called()
