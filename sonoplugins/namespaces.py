"""Report items for namespaces with their resource quotas and limit ranges."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from sonoplugins.kube import KubeError
from sonoplugins.pod import _Resource
from sonoplugins.reports import SonobuoyResultsItem

_LIMIT_RANGE_KEYS = ("default", "defaultRequest", "min", "max", "maxLimitRequestRatio")


def _name_of(obj: Mapping[str, Any]) -> str:
    return str((obj.get("metadata") or {}).get("name") or "")


def _resource_list(resources: Mapping[str, Any]) -> dict[str, str]:
    return {str(name): str(quantity) for name, quantity in resources.items()}


def parse_quota(resource_quota: Mapping[str, Any]) -> dict[str, dict[str, str]]:
    """Map each resource of a quota to its hard limit and current use."""
    status = resource_quota.get("status") or {}
    quota: dict[str, dict[str, str]] = {}
    for name, quantity in (status.get("hard") or {}).items():
        quota.setdefault(str(name), {})["limit"] = str(quantity)
    for name, quantity in (status.get("used") or {}).items():
        quota.setdefault(str(name), {})["used"] = str(quantity)
    return quota


def parse_limit_range(item: Mapping[str, Any]) -> dict[str, Any]:
    """Describe one limit range entry, leaving out empty resource lists."""
    out: dict[str, Any] = {"type": item.get("type", "")}
    for key in _LIMIT_RANGE_KEYS:
        resources = item.get(key) or {}
        if resources:
            out[key] = _resource_list(resources)
    return out


@dataclass
class Namespace(_Resource):
    """A namespace with its resource quotas and limit ranges."""

    quotas: list[dict[str, Any]] = field(default_factory=list)
    limits: list[dict[str, Any]] = field(default_factory=list)

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        """Describe the namespace, its quotas and its limit ranges."""
        item = SonobuoyResultsItem(
            name=self.name, status=str(self.status.get("phase") or "")
        )
        if self.quotas:
            item.details["resourceQuotas"] = {
                _name_of(quota): parse_quota(quota) for quota in self.quotas
            }
        if self.limits:
            limits: dict[str, list[dict[str, Any]]] = {}
            for limit_range in self.limits:
                entries = ((limit_range.get("spec") or {}).get("limits")) or []
                limits[_name_of(limit_range)] = [parse_limit_range(e) for e in entries]
            item.details["limitRanges"] = limits
        return item


class Namespaces(list):
    """All namespaces of a cluster."""

    def generate_sonobuoy_item(self) -> SonobuoyResultsItem:
        """Describe every namespace under one item."""
        return SonobuoyResultsItem(
            name="Namespaces",
            status="complete",
            items=[namespace.generate_sonobuoy_item() for namespace in self],
        )


def get_namespaces(client: Any) -> Namespaces:
    """Fetch every namespace with its limit ranges and resource quotas.

    Failures are reported and skipped, so what could be read is still returned.
    """
    try:
        listed = client.list("namespaces")
    except KubeError:
        print("could not fetch namespaces")
        listed = []

    namespaces = Namespaces()
    for obj in listed:
        namespace = Namespace(obj=obj)
        try:
            namespace.limits = client.list("limitranges", namespace=namespace.name)
        except KubeError:
            print("could not fetch limit ranges for ", namespace.name)
        try:
            namespace.quotas = client.list("resourcequotas", namespace=namespace.name)
        except KubeError:
            print("could not fetch resource quotas for ", namespace.name)
        namespaces.append(namespace)
    return namespaces