"""Report items for workload controllers and the objects they own."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sonoplugins.pod import Pod, _Resource
from sonoplugins.reports import SonobuoyResultsItem


def _format_time(value: Any) -> str:
    if value is None:
        return "<nil>"
    text = str(value)
    try:
        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return text
    offset = moment.utcoffset()
    if offset is None or offset.total_seconds() == 0:
        return f"{moment:%Y-%m-%d %H:%M:%S} +0000 UTC"
    zone = f"{moment:%z}"
    return f"{moment:%Y-%m-%d %H:%M:%S} {zone} {zone}"


def _int(mapping: dict[str, Any], key: str) -> int:
    return int(mapping.get(key) or 0)


def _add_common(item: SonobuoyResultsItem, resource: _Resource) -> None:
    spec = resource.spec
    if spec.get("selector") is not None:
        item.details["selector"] = spec["selector"]
    node_selector = resource._template_node_selector()
    if node_selector is not None:
        item.details["nodeSelector"] = node_selector


def _replica_status(resource: _Resource) -> str:
    s = resource.status
    return (
        f"Desired: {_int(resource.spec, 'replicas')}, Current: {_int(s, 'replicas')}, "
        f"Ready: {_int(s, 'readyReplicas')}, Available: {_int(s, 'availableReplicas')}"
    )


def _replica_item(resource: _Resource, kind: str, pods: dict[str, Pod]) -> SonobuoyResultsItem:
    spec = resource.spec
    item = SonobuoyResultsItem(
        name=resource.name,
        status=_replica_status(resource),
        metadata={"kind": kind, "uid": resource.uid},
        details={
            "status": resource.status,
            "replicas": spec.get("replicas"),
            "minReadySeconds": _int(spec, "minReadySeconds"),
        },
    )
    _add_common(item, resource)
    if resource.labels:
        item.details["labels"] = resource.labels
    item.items.extend(pod.generate_sonobuoy_item() for pod in pods.values())
    return item


@dataclass
class Job(_Resource):
    """A job and the pods it controls."""

    pods: dict[str, Pod] = field(default_factory=dict)

    def status_message(self) -> str:
        status = self.status
        return (
            f"Running: {_int(status, 'active')}, Succeeded: {_int(status, 'succeeded')}, "
            f"Failed: {_int(status, 'failed')}"
        )

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        spec = self.spec
        item = SonobuoyResultsItem(
            name=self.name,
            status=self.status_message(),
            details={"status": self.status, "selector": spec.get("selector")},
        )
        for key in (
            "parallelism",
            "completions",
            "activeDeadlineSeconds",
            "backoffLimit",
            "ttlSecondsAfterFinished",
        ):
            if spec.get(key) is not None:
                item.details[key] = spec[key]
        item.items.extend(pod.generate_sonobuoy_item() for pod in self.pods.values())
        return item


@dataclass
class CronJob(_Resource):
    """A cron job and the jobs it created."""

    jobs: dict[str, Job] = field(default_factory=dict)

    def status_message(self) -> str:
        active = len(self.status.get("active") or ())
        return f"Active: {active}, Last Schedule: {_format_time(self.status.get('lastScheduleTime'))}"

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        spec, status = self.spec, self.status
        item = SonobuoyResultsItem(
            name=self.name,
            status=self.status_message(),
            metadata={"kind": "CronJob", "uid": self.uid},
            details={
                "active": len(status.get("active") or ()),
                "schedule": spec.get("schedule", ""),
                "suspend": spec.get("suspend"),
                "concurrencyPolicy": spec.get("concurrencyPolicy", ""),
                "lastScheduleTime": status.get("lastScheduleTime"),
                "successfulJobHistoryLimit": spec.get("successfulJobsHistoryLimit"),
                "failedJobHistoryLimit": spec.get("failedJobsHistoryLimit"),
            },
        )
        if self.labels:
            item.details["labels"] = self.labels
        item.items.extend(job.generate_sonobuoy_item() for job in self.jobs.values())
        return item


@dataclass
class DaemonSet(_Resource):
    """A daemon set and its pods."""

    pods: dict[str, Pod] = field(default_factory=dict)

    def status_message(self) -> str:
        s = self.status
        return (
            f"Current: {_int(s, 'currentNumberScheduled')}, "
            f"Desired: {_int(s, 'desiredNumberScheduled')}, "
            f"Ready: {_int(s, 'numberReady')}, "
            f"Up-to-date: {_int(s, 'updatedNumberScheduled')}, "
            f"Available: {_int(s, 'numberAvailable')}"
        )

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        spec = self.spec
        item = SonobuoyResultsItem(
            name=self.name,
            status=self.status_message(),
            metadata={"kind": "DaemonSet", "uid": self.uid},
            details={"status": self.status, "updateStrategy": spec.get("updateStrategy")},
        )
        if spec.get("revisionHistoryLimit") is not None:
            item.details["revisionHistoryLimit"] = spec["revisionHistoryLimit"]
        _add_common(item, self)
        if self.labels:
            item.details["labels"] = self.labels
        item.items.extend(pod.generate_sonobuoy_item() for pod in self.pods.values())
        return item


@dataclass
class ReplicaSet(_Resource):
    """A replica set and its pods."""

    pods: dict[str, Pod] = field(default_factory=dict)

    def status_message(self) -> str:
        return _replica_status(self)

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        return _replica_item(self, "ReplicaSet", self.pods)


@dataclass
class ReplicationController(ReplicaSet):
    """A replication controller and its pods."""

    def status_message(self) -> str:
        return _replica_status(self)

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        return _replica_item(self, "ReplicationController", self.pods)


@dataclass
class Deployment(_Resource):
    """A deployment and the replica sets it owns."""

    replica_sets: dict[str, ReplicaSet] = field(default_factory=dict)

    def status_message(self) -> str:
        s = self.status
        return (
            f"Desired: {_int(self.spec, 'replicas')}, Up-to-date: {_int(s, 'updatedReplicas')}, "
            f"Total: {_int(s, 'replicas')}, Available: {_int(s, 'availableReplicas')}"
        )

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        spec = self.spec
        item = SonobuoyResultsItem(
            name=self.name,
            metadata={"kind": "Deployment", "uid": self.uid},
            details={
                "status": self.status,
                "deploymentStrategy": spec.get("strategy"),
                "minReadySeconds": _int(spec, "minReadySeconds"),
                "paused": bool(spec.get("paused", False)),
            },
        )
        for key in ("replicas", "progressDeadlineSeconds", "revisionHistoryLimit"):
            if spec.get(key) is not None:
                item.details[key] = spec[key]
        _add_common(item, self)
        if self.labels:
            item.details["labels"] = self.labels
        item.items.extend(rs.generate_sonobuoy_item() for rs in self.replica_sets.values())
        return item


@dataclass
class StatefulSet(_Resource):
    """A stateful set and its pods."""

    pods: dict[str, Pod] = field(default_factory=dict)

    def status_message(self) -> str:
        s = self.status
        return (
            f"Desired: {_int(self.spec, 'replicas')}, Total: {_int(s, 'replicas')}, "
            f"Current: {_int(s, 'currentReplicas')}, Ready: {_int(s, 'readyReplicas')}"
        )

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        spec = self.spec
        item = SonobuoyResultsItem(
            name=self.name,
            status=self.status_message(),
            metadata={"kind": "StatefulSet", "uid": self.uid},
            details={
                "status": self.status,
                "replicas": spec.get("replicas"),
                "podManagementPolicy": spec.get("podManagementPolicy", ""),
                "updateStrategy": spec.get("updateStrategy"),
                "serviceName": spec.get("serviceName", ""),
            },
        )
        _add_common(item, self)
        if spec.get("revisionHistoryLimit") is not None:
            item.details["revisionHistoryLimit"] = spec["revisionHistoryLimit"]
        if self.labels:
            item.details["labels"] = self.labels
        item.items.extend(pod.generate_sonobuoy_item() for pod in self.pods.values())
        return item