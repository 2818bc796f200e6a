import socket
from unittest import mock

import pytest

from sonoplugins.cluster import (
    Components,
    ControlPlane,
    NetworkStatus,
    Node,
    Nodes,
    audit_logging_enabled,
    control_plane_node_count,
    get_components,
    get_control_plane,
    get_network_status,
    get_nodes,
    provider_for,
)
from sonoplugins.kube import KubeError


class FakeClient:
    def __init__(self, data, failing=()):
        self.data = data
        self.failing = set(failing)
        self.calls = []

    def list(self, resource, namespace=None, label_selector=None):
        self.calls.append((resource, namespace, label_selector))
        if resource in self.failing:
            raise KubeError("boom")
        return self.data.get(resource, [])


def make_node(name, labels=None, provider_id="", conditions=(), unschedulable=False):
    return {
        "metadata": {"name": name, "labels": labels or {}},
        "spec": {"providerID": provider_id, "unschedulable": unschedulable},
        "status": {
            "conditions": [{"type": t, "status": s} for t, s in conditions],
            "capacity": {"cpu": "4", "memory": "16Gi"},
            "allocatable": {"cpu": "3500m"},
        },
    }


def test_status_message_lists_true_conditions():
    node = Node(obj=make_node("n", conditions=[("Ready", "True"), ("MemoryPressure", "False")]))
    assert node.status_message() == "Ready"


def test_status_message_unknown_and_unschedulable():
    node = Node(obj=make_node("n", unschedulable=True))
    assert node.status_message() == "Unknown,SchedulingDisabled"


def test_parse_resources_keeps_quantities_as_strings():
    node = Node(obj=make_node("n"))
    assert node.parse_resources() == {
        "allocatable": {"cpu": "3500m"},
        "capacity": {"cpu": "4", "memory": "16Gi"},
    }


def test_node_item_optional_details():
    plain = Node(obj=make_node("n")).generate_sonobuoy_item()
    assert plain.name == "n"
    assert plain.details["unschedulable"] == "false"
    assert "providerID" not in plain.details
    assert "labels" not in plain.details

    rich = Node(
        obj=make_node("m", labels={"a": "b"}, provider_id="aws://x", unschedulable=True)
    ).generate_sonobuoy_item()
    assert rich.details["unschedulable"] == "true"
    assert rich.details["providerID"] == "aws://x"
    assert rich.details["labels"] == {"a": "b"}


@pytest.mark.parametrize(
    "provider_id, expected",
    [("aws://us/i-1", "AWS"), ("gce://p/z/i", "GKE"), ("azure:///sub", "Azure"), ("kind://x", "")],
)
def test_provider_for(provider_id, expected):
    assert provider_for(make_node("n", provider_id=provider_id)) == expected
    assert provider_for(Node(obj=make_node("n", provider_id=provider_id))) == expected


def test_control_plane_node_count():
    nodes = [
        make_node("a", labels={"node-role.kubernetes.io/master": ""}),
        make_node("b"),
        make_node("c", labels={"node-role.kubernetes.io/master": ""}),
    ]
    assert control_plane_node_count(nodes) == 2


def apiserver(command):
    return {"spec": {"containers": [{"command": command}]}}


def test_audit_logging_enabled_detects_flags():
    client = FakeClient({"pods": [apiserver(["kube-apiserver", "--audit-log-path=/var/log/a"])]})
    assert audit_logging_enabled(client) is True
    assert client.calls == [("pods", "kube-system", "component=kube-apiserver")]
    webhook = FakeClient({"pods": [apiserver(["--audit-webhook-config-file=/w"])]})
    assert audit_logging_enabled(webhook) is True


def test_audit_logging_disabled_and_on_error():
    assert audit_logging_enabled(FakeClient({"pods": [apiserver(["--v=2"])]})) is False
    assert audit_logging_enabled(FakeClient({}, failing={"pods"})) is False


def test_get_control_plane_ha():
    master = {"node-role.kubernetes.io/master": ""}
    client = FakeClient(
        {
            "nodes": [
                make_node("a", labels=master, provider_id="gce://p"),
                make_node("b", labels=master),
            ],
            "pods": [apiserver(["--audit-log-path=/x"])],
        }
    )
    cp = get_control_plane(client)
    assert (cp.provider, cp.is_ha, cp.num_nodes, cp.audit_log_enabled) == ("GKE", True, 2, True)
    item = cp.generate_sonobuoy_item().to_dict()
    assert item["status"] == "complete"
    assert item["details"]["provider"] == "GKE"
    assert item["details"]["isHA"] is True


def test_control_plane_error_item():
    cp = get_control_plane(FakeClient({}, failing={"nodes"}))
    item = cp.generate_sonobuoy_item().to_dict()
    assert item["status"] == "incomplete"
    assert item["details"] == {"error": "boom"}


def test_control_plane_without_provider_omits_it():
    item = ControlPlane(num_nodes=1).generate_sonobuoy_item()
    assert "provider" not in item.details
    assert item.details["isHA"] is False


def test_get_nodes_and_error():
    nodes = get_nodes(FakeClient({"nodes": [make_node("a"), make_node("b")]}))
    assert [n.name for n in nodes.nodes] == ["a", "b"]
    item = nodes.generate_sonobuoy_item()
    assert [i.name for i in item.items] == ["a", "b"]

    failed = get_nodes(FakeClient({}, failing={"nodes"}))
    assert isinstance(failed.error, KubeError)
    assert failed.generate_sonobuoy_item().items == []


def test_network_status():
    with mock.patch("socket.getaddrinfo", side_effect=socket.gaierror("no")):
        assert get_network_status().external_dns is False
    with mock.patch("socket.getaddrinfo", return_value=[]):
        assert get_network_status().external_dns is True
    item = NetworkStatus(external_dns=True).generate_sonobuoy_item()
    assert item.details == {"externalDNS": True}


def test_components_item_order():
    with mock.patch("socket.getaddrinfo", return_value=[]):
        components = get_components(FakeClient({"nodes": [make_node("a")]}))
    item = components.generate_sonobuoy_item()
    assert item.name == "Cluster Components"
    assert [i.name for i in item.items] == ["Nodes", "Control Plane", "Network Status"]
    assert Components(nodes=Nodes()).generate_sonobuoy_item().items[0].items == []