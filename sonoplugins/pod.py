"""Report items for pods and their containers."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from sonoplugins.reports import SonobuoyResultsItem

_CONTAINER_STATES = (
    ("running", "Running"),
    ("waiting", "Waiting"),
    ("terminated", "Terminated"),
)


@dataclass
class _Resource:
    """A Kubernetes object held as the dictionary the API returned."""

    obj: dict[str, Any] = field(default_factory=dict)

    @property
    def metadata(self) -> dict[str, Any]:
        return self.obj.get("metadata") or {}

    @property
    def spec(self) -> dict[str, Any]:
        return self.obj.get("spec") or {}

    @property
    def status(self) -> dict[str, Any]:
        return self.obj.get("status") or {}

    @property
    def name(self) -> str:
        return str(self.metadata.get("name") or "")

    @property
    def uid(self) -> str:
        return str(self.metadata.get("uid") or "")

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.get("labels") or {}

    def _template_node_selector(self) -> Any:
        template = self.spec.get("template") or {}
        return (template.get("spec") or {}).get("nodeSelector")


def container_item(
    container: Mapping[str, Any],
    statuses: Sequence[Mapping[str, Any]] | None,
    is_init: bool = False,
) -> SonobuoyResultsItem:
    """Describe one container, using the status reported under the same name."""
    name = str(container.get("name") or "")
    item = SonobuoyResultsItem(
        name=name,
        metadata={"kind": "Container"},
        details={"image": container.get("image", "")},
    )
    if is_init:
        item.metadata["init"] = "true"

    for status in statuses or ():
        if status.get("name", "") != name:
            continue
        state = status.get("state") or {}
        for key, label in _CONTAINER_STATES:
            if state.get(key) is not None:
                item.status = label
                item.details["state"] = {key: state[key]}
                break
        item.details["imageID"] = status.get("imageID", "")
        item.details["ready"] = bool(status.get("ready", False))
        item.details["restartCount"] = int(status.get("restartCount") or 0)

    item.details["command"] = container.get("command")
    item.details["args"] = container.get("args")
    item.details["volumeMounts"] = container.get("volumeMounts")
    return item


@dataclass
class Pod(_Resource):
    """A pod in the inventory."""

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        """Describe the pod with one child item per container."""
        spec, status = self.spec, self.status
        item = SonobuoyResultsItem(
            name=self.name,
            status=str(status.get("phase") or ""),
            metadata={"kind": "Pod", "uid": self.uid},
            details={
                "conditions": status.get("conditions"),
                "hostIP": status.get("hostIP", ""),
                "node": spec.get("nodeName", ""),
                "podIP": status.get("podIP", ""),
                "priority": spec.get("priority"),
                "qos": status.get("qosClass", ""),
                "serviceAccount": spec.get("serviceAccountName", ""),
            },
        )
        item.details["volumes"] = [dict(volume) for volume in spec.get("volumes") or ()]

        if self.labels:
            item.details["labels"] = self.labels
        if spec.get("tolerations"):
            item.details["tolerations"] = spec["tolerations"]
        if spec.get("nodeSelector"):
            item.details["nodeSelector"] = spec["nodeSelector"]

        item.items.extend(
            container_item(c, status.get("initContainerStatuses"), True)
            for c in spec.get("initContainers") or ()
        )
        item.items.extend(
            container_item(c, status.get("containerStatuses"), False)
            for c in spec.get("containers") or ()
        )
        return item