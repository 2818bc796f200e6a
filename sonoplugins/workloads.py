"""Workloads of each namespace arranged as a tree of owners and owned objects."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable

from sonoplugins.controllers import (
    CronJob,
    DaemonSet,
    Deployment,
    Job,
    ReplicaSet,
    ReplicationController,
    StatefulSet,
)
from sonoplugins.kube import KubeError
from sonoplugins.pod import Pod
from sonoplugins.reports import SonobuoyResultsItem


class WorkloadsError(KubeError):
    """Raised when workloads cannot be read; holds what was gathered before."""

    def __init__(self, message: str, partial: NamespacedWorkloads) -> None:
        super().__init__(message)
        self.partial = partial


def controller_of(obj: Any) -> dict[str, Any] | None:
    """Return the owner reference marked as controller, if any."""
    data = getattr(obj, "obj", obj)
    if not isinstance(data, Mapping):
        return None
    for ref in (data.get("metadata") or {}).get("ownerReferences") or ():
        if ref.get("controller"):
            return ref
    return None


class WorkloadsTree:
    """The workloads of one namespace, each filed under its controller."""

    def __init__(self, client: Any, namespace: str) -> None:
        self.client = client
        self.namespace = namespace
        self.deployments: dict[str, Deployment] = {}
        self.replica_sets: dict[str, ReplicaSet] = {}
        self.replication_controllers: dict[str, ReplicationController] = {}
        self.stateful_sets: dict[str, StatefulSet] = {}
        self.daemon_sets: dict[str, DaemonSet] = {}
        self.jobs: dict[str, Job] = {}
        self.cron_jobs: dict[str, CronJob] = {}
        self.pods: dict[str, Pod] = {}

    def _add(self, resource: str, target: dict[str, Any], factory: Callable[[dict], Any]) -> None:
        for obj in self.client.list(resource, namespace=self.namespace):
            name = str((obj.get("metadata") or {}).get("name") or "")
            if name not in target:
                target[name] = factory(obj)

    def populate(self) -> None:
        """Fetch every kind of workload in the namespace and link owners."""
        self._add("pods", self.pods, lambda o: Pod(obj=o))
        self._add("deployments", self.deployments, lambda o: Deployment(obj=o))
        self._add("replicasets", self.replica_sets, lambda o: ReplicaSet(obj=o))
        self._add(
            "replicationcontrollers",
            self.replication_controllers,
            lambda o: ReplicationController(obj=o),
        )
        self._add("statefulsets", self.stateful_sets, lambda o: StatefulSet(obj=o))
        self._add("daemonsets", self.daemon_sets, lambda o: DaemonSet(obj=o))
        self._add("jobs", self.jobs, lambda o: Job(obj=o))
        self._add("cronjobs", self.cron_jobs, lambda o: CronJob(obj=o))
        self.resolve_owner_references()

    @staticmethod
    def _move(
        source: dict[str, Any],
        name: str,
        child: Any,
        owners: Mapping[str, Any],
        ref: Mapping[str, Any],
        attribute: str,
    ) -> None:
        owner = owners.get(str(ref.get("name") or ""))
        if owner is not None and owner.uid == str(ref.get("uid") or ""):
            getattr(owner, attribute)[name] = child
            del source[name]

    def resolve_owner_references(self) -> None:
        """Move objects from the top level to the controller that owns them."""
        pod_owners = {
            "ReplicaSet": self.replica_sets,
            "ReplicationController": self.replication_controllers,
            "DaemonSet": self.daemon_sets,
            "StatefulSet": self.stateful_sets,
            "Job": self.jobs,
        }
        for name, pod in list(self.pods.items()):
            ref = controller_of(pod)
            if ref is not None and ref.get("kind") in pod_owners:
                self._move(self.pods, name, pod, pod_owners[ref["kind"]], ref, "pods")

        for name, replica_set in list(self.replica_sets.items()):
            ref = controller_of(replica_set)
            if ref is not None and ref.get("kind") == "Deployment":
                self._move(
                    self.replica_sets, name, replica_set, self.deployments, ref, "replica_sets"
                )

        for name, job in list(self.jobs.items()):
            ref = controller_of(job)
            if ref is not None and ref.get("kind") == "CronJob":
                self._move(self.jobs, name, job, self.cron_jobs, ref, "jobs")

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        """Describe the namespace with one section per kind of workload."""
        item = SonobuoyResultsItem(
            name=self.namespace, status="complete", metadata={"kind": "Namespace"}
        )
        sections = (
            ("Deployments", self.deployments),
            ("Replica Sets", self.replica_sets),
            ("Replication Controllers", self.replication_controllers),
            ("Stateful Sets", self.stateful_sets),
            ("Daemon Sets", self.daemon_sets),
            ("Cron Jobs", self.cron_jobs),
            ("Jobs", self.jobs),
            ("Pods", self.pods),
        )
        for label, members in sections:
            if members:
                item.items.append(
                    SonobuoyResultsItem(
                        name=label,
                        status="complete",
                        items=[m.generate_sonobuoy_item() for m in members.values()],
                    )
                )
        return item


class NamespacedWorkloads(dict):
    """Workload trees keyed by namespace name."""

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        """Describe the workloads of every namespace."""
        return SonobuoyResultsItem(
            name="Namespaced Workloads",
            status="complete",
            items=[tree.generate_sonobuoy_item() for tree in self.values()],
        )


def get_workloads(client: Any) -> NamespacedWorkloads:
    """Build the workload tree of every namespace.

    On failure a WorkloadsError carries the trees built so far.
    """
    try:
        namespaces = client.list("namespaces")
    except KubeError as exc:
        raise WorkloadsError(str(exc), NamespacedWorkloads()) from exc

    workloads = NamespacedWorkloads()
    for obj in namespaces:
        name = str((obj.get("metadata") or {}).get("name") or "")
        tree = WorkloadsTree(client, name)
        try:
            tree.populate()
        except KubeError as exc:
            raise WorkloadsError(str(exc), workloads) from exc
        workloads[name] = tree
    return workloads