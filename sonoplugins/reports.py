"""Results items for inventory reports and writing them as YAML."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, TextIO

import yaml


def to_plain(value: Any) -> Any:
    """Convert a value into YAML and JSON friendly data."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {str(key): to_plain(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_plain(val) for val in value]
    if isinstance(value, BaseException):
        return str(value)
    if isinstance(value, enum.Enum):
        return value.value
    return value


@dataclass
class SonobuoyResultsItem:
    """A node in an inventory report."""

    name: str
    status: str = ""
    metadata: dict[str, str] = field(default_factory=dict)
    details: dict[str, Any] = field(default_factory=dict)
    items: list[SonobuoyResultsItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the item as plain data, leaving out empty fields."""
        out: dict[str, Any] = {"name": self.name}
        if self.status:
            out["status"] = self.status
        if self.metadata:
            out["meta"] = dict(self.metadata)
        if self.details:
            out["details"] = to_plain(self.details)
        if self.items:
            out["items"] = [item.to_dict() for item in self.items]
        return out


class SonobuoyItemGenerator(Protocol):
    def generate_sonobuoy_item(self) -> SonobuoyResultsItem: ...


def write_sonobuoy_report(stream: TextIO, generator: SonobuoyItemGenerator) -> None:
    """Write the generator's item to a text stream as YAML."""
    item = generator.generate_sonobuoy_item()
    stream.write(yaml.safe_dump(item.to_dict(), sort_keys=False, default_flow_style=False))