"""Cluster components: nodes, the control plane and network reachability."""

from __future__ import annotations

import socket
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from sonoplugins.kube import KubeError
from sonoplugins.pod import _Resource
from sonoplugins.reports import SonobuoyResultsItem

MASTER_ROLE_LABEL = "node-role.kubernetes.io/master"
_PROVIDERS = (("aws://", "AWS"), ("gce://", "GKE"), ("azure://", "Azure"))
_AUDIT_FLAGS = ("audit-log-path", "audit-webhook-config-file")


def _object(node: Any) -> Mapping[str, Any]:
    data = getattr(node, "obj", node)
    return data if isinstance(data, Mapping) else {}


def _resource_list(resources: Mapping[str, Any] | None) -> dict[str, str]:
    return {str(name): str(quantity) for name, quantity in (resources or {}).items()}


@dataclass
class Node(_Resource):
    """A node of the cluster."""

    def status_message(self) -> str:
        """Join the true conditions, noting when scheduling is disabled."""
        status = [
            str(cond.get("type") or "")
            for cond in self.status.get("conditions") or ()
            if cond.get("status") == "True"
        ]
        if not status:
            status.append("Unknown")
        if self.spec.get("unschedulable"):
            status.append("SchedulingDisabled")
        return ",".join(status)

    def parse_resources(self) -> dict[str, dict[str, str]]:
        """Return the allocatable and capacity resources as strings."""
        return {
            "allocatable": _resource_list(self.status.get("allocatable")),
            "capacity": _resource_list(self.status.get("capacity")),
        }

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        spec, status = self.spec, self.status
        item = SonobuoyResultsItem(
            name=self.name,
            status=self.status_message(),
            details={
                "conditions": status.get("conditions"),
                "images": status.get("images"),
                "resources": self.parse_resources(),
                "addresses": status.get("addresses"),
                "volumesInUse": status.get("volumesInUse"),
                "volumesAttached": status.get("volumesAttached"),
                "nodeInfo": status.get("nodeInfo"),
                "podCIDR": spec.get("podCIDR", ""),
                "unschedulable": "true" if spec.get("unschedulable") else "false",
            },
        )
        if spec.get("podCIDRs"):
            item.details["podCIDRs"] = spec["podCIDRs"]
        if spec.get("providerID"):
            item.details["providerID"] = spec["providerID"]
        if spec.get("taints"):
            item.details["taints"] = spec["taints"]
        if self.labels:
            item.details["labels"] = self.labels
        return item


@dataclass
class Nodes:
    """The nodes of the cluster, or the error met while listing them."""

    nodes: list[Node] = field(default_factory=list)
    error: Exception | None = None

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        return SonobuoyResultsItem(
            name="Nodes",
            status="complete",
            items=[node.generate_sonobuoy_item() for node in self.nodes],
        )


def get_nodes(client: Any) -> Nodes:
    """List the cluster's nodes."""
    try:
        listed = client.list("nodes")
    except KubeError as exc:
        return Nodes(error=exc)
    return Nodes(nodes=[Node(obj=obj) for obj in listed])


@dataclass
class ControlPlane:
    """What is known about the control plane."""

    provider: str = ""
    is_ha: bool = False
    num_nodes: int = 0
    audit_log_enabled: bool = False
    error: Exception | None = None

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        item = SonobuoyResultsItem(name="Control Plane")
        if self.error is not None:
            item.status = "incomplete"
            item.details["error"] = self.error
            return item
        item.status = "complete"
        item.details["auditLogEnabled"] = self.audit_log_enabled
        item.details["isHA"] = self.is_ha
        item.details["numNodes"] = self.num_nodes
        if self.provider:
            item.details["provider"] = self.provider
        return item


def provider_for(node: Any) -> str:
    """Name the cloud provider from a node's provider ID, or return ""."""
    provider_id = str((_object(node).get("spec") or {}).get("providerID") or "")
    for marker, name in _PROVIDERS:
        if marker in provider_id:
            return name
    return ""


def control_plane_node_count(nodes: Any) -> int:
    """Count the nodes that carry the master role label."""
    return sum(
        1
        for node in nodes
        if MASTER_ROLE_LABEL in ((_object(node).get("metadata") or {}).get("labels") or {})
    )


def audit_logging_enabled(client: Any) -> bool:
    """Tell whether any API server is started with an audit backend."""
    try:
        pods = client.list(
            "pods", namespace="kube-system", label_selector="component=kube-apiserver"
        )
    except KubeError:
        return False
    return any(
        flag in str(param)
        for pod in pods
        for container in (pod.get("spec") or {}).get("containers") or ()
        for param in container.get("command") or ()
        for flag in _AUDIT_FLAGS
    )


def get_control_plane(client: Any) -> ControlPlane:
    """Describe the control plane from the node list and API server pods."""
    try:
        nodes = client.list("nodes")
    except KubeError as exc:
        return ControlPlane(error=exc)
    count = control_plane_node_count(nodes)
    return ControlPlane(
        provider=provider_for(nodes[0]) if nodes else "",
        is_ha=count > 1,
        num_nodes=count,
        audit_log_enabled=audit_logging_enabled(client),
    )


@dataclass
class NetworkStatus:
    """Whether external names resolve from inside the cluster."""

    external_dns: bool = False

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        return SonobuoyResultsItem(
            name="Network Status",
            status="complete",
            details={"externalDNS": self.external_dns},
        )


def get_network_status() -> NetworkStatus:
    """Try resolving an external name."""
    try:
        socket.getaddrinfo("google.com", None)
    except OSError:
        return NetworkStatus(external_dns=False)
    return NetworkStatus(external_dns=True)


@dataclass
class Components:
    """The cluster components gathered for the inventory."""

    nodes: Nodes = field(default_factory=Nodes)
    control_plane: ControlPlane = field(default_factory=ControlPlane)
    network_status: NetworkStatus = field(default_factory=NetworkStatus)

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        return SonobuoyResultsItem(
            name="Cluster Components",
            status="complete",
            items=[
                self.nodes.generate_sonobuoy_item(),
                self.control_plane.generate_sonobuoy_item(),
                self.network_status.generate_sonobuoy_item(),
            ],
        )


def get_components(client: Any) -> Components:
    """Gather every cluster component."""
    return Components(
        nodes=get_nodes(client),
        control_plane=get_control_plane(client),
        network_status=get_network_status(),
    )