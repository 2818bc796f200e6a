"""Collects a cluster inventory and writes it as reports."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass, field
from typing import Any

from sonoplugins.cluster import Components, Node, get_components
from sonoplugins.kube import KubeError, get_kube_client
from sonoplugins.namespaces import Namespaces, get_namespaces
from sonoplugins.reports import SonobuoyResultsItem, to_plain, write_sonobuoy_report
from sonoplugins.workloads import NamespacedWorkloads, WorkloadsError, get_workloads

_CHILD_ATTRIBUTES = (("pods", "Pods"), ("replica_sets", "ReplicaSets"), ("jobs", "Jobs"))
_TREE_SECTIONS = (
    ("Deployments", "deployments"),
    ("ReplicaSets", "replica_sets"),
    ("ReplicationControllers", "replication_controllers"),
    ("StatefulSets", "stateful_sets"),
    ("DaemonSets", "daemon_sets"),
    ("Jobs", "jobs"),
    ("CronJobs", "cron_jobs"),
    ("Pods", "pods"),
)


def _resource_dict(resource: Any) -> dict[str, Any]:
    out = dict(resource.obj)
    for attribute, key in _CHILD_ATTRIBUTES:
        children = getattr(resource, attribute, None)
        if children is not None:
            out[key] = {name: _resource_dict(child) for name, child in children.items()}
    return out


def _node_dict(node: Node) -> dict[str, Any]:
    return dict(node.obj)


@dataclass
class Results:
    """Everything the inventory gathered."""

    cluster_components: Components = field(default_factory=Components)
    namespaces: Namespaces = field(default_factory=Namespaces)
    workloads: NamespacedWorkloads = field(default_factory=NamespacedWorkloads)

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        return SonobuoyResultsItem(
            name="Cluster Inventory",
            status="complete",
            items=[
                self.cluster_components.generate_sonobuoy_item(),
                self.namespaces.generate_sonobuoy_item(),
                self.workloads.generate_sonobuoy_item(),
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the raw inventory as JSON friendly data."""
        components = self.cluster_components
        control_plane = components.control_plane
        return {
            "ClusterComponents": {
                "Nodes": {"Nodes": [_node_dict(n) for n in components.nodes.nodes]},
                "ControlPlane": {
                    "Provider": control_plane.provider,
                    "IsHA": control_plane.is_ha,
                    "NumNodes": control_plane.num_nodes,
                    "AuditLogEnabled": control_plane.audit_log_enabled,
                },
                "NetworkStatus": {"ExternalDNS": components.network_status.external_dns},
            },
            "Namespaces": [dict(ns.obj) for ns in self.namespaces],
            "Workloads": {
                namespace: {
                    key: {
                        name: _resource_dict(resource)
                        for name, resource in getattr(tree, attribute).items()
                    }
                    for key, attribute in _TREE_SECTIONS
                }
                for namespace, tree in self.workloads.items()
            },
        }


class Collector:
    """Gathers the inventory of a cluster through a client."""

    def __init__(self, client: Any) -> None:
        self.client = client

    def run(self) -> Results:
        """Gather components, namespaces and workloads.

        Workloads that could not all be read are kept as far as they got.
        """
        components = get_components(self.client)
        namespaces = get_namespaces(self.client)
        try:
            workloads = get_workloads(self.client)
        except WorkloadsError as exc:
            workloads = exc.partial
        return Results(
            cluster_components=components, namespaces=namespaces, workloads=workloads
        )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cluster-inventory",
        description="Creates reports describing the resources and workloads in your cluster",
    )
    commands = parser.add_subparsers(dest="command")
    run = commands.add_parser("run", help="Run the cluster inventory and produce reports")
    run.add_argument(
        "--sonobuoy-report",
        default="",
        help="Generate a Sonobuoy results report at the given path",
    )
    run.add_argument("--json-report", default="", help="Generate a JSON report at the given path")
    return parser


def _run(sonobuoy_report: str, json_report: str) -> None:
    try:
        client = get_kube_client()
    except KubeError as exc:
        raise KubeError(f"creating Kubernetes Client: {exc}") from exc

    results = Collector(client).run()

    if sonobuoy_report:
        try:
            handle = open(sonobuoy_report, "w", encoding="utf-8")
        except OSError as exc:
            raise OSError(f"opening sonobuoy report file: {exc}") from exc
        with handle:
            try:
                write_sonobuoy_report(handle, results)
            except OSError as exc:
                raise OSError(f"writing sonobuoy report: {exc}") from exc

    if json_report:
        try:
            handle = open(json_report, "w", encoding="utf-8")
        except OSError as exc:
            raise OSError(f"opening json report file: {exc}") from exc
        with handle:
            try:
                handle.write(json.dumps(to_plain(results.to_dict())) + "\n")
            except OSError as exc:
                raise OSError(f"writing json report: {exc}") from exc


def main(argv: list[str] | None = None) -> int:
    """Run the command line; return the exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command != "run":
        parser.print_help()
        return 0
    try:
        _run(args.sonobuoy_report, args.json_report)
    except (KubeError, OSError) as exc:
        print(exc)
        return 1
    return 0