"""Configuration, reporting and running of reliability checks."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

import yaml

CHECK_START_MSG = "starting"
CHECK_WRITE_MSG = "writing-result"
CHECK_COMPLETE_MSG = "complete"

_log = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised when the scanner configuration cannot be used."""


def _spec_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if value is None else str(value)


@dataclass
class CheckConfig:
    """One configured check."""

    name: str = ""
    description: str = ""
    kind: str = ""
    spec: dict[str, str] = field(default_factory=dict)


@dataclass
class ReliabilityConfig:
    """The overall scanner configuration."""

    checks: list[CheckConfig] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> ReliabilityConfig:
        """Build a configuration from parsed YAML."""
        checks = []
        for entry in (data or {}).get("checks") or []:
            spec = {str(k): _spec_value(v) for k, v in (entry.get("spec") or {}).items()}
            checks.append(
                CheckConfig(
                    name=str(entry.get("name") or ""),
                    description=str(entry.get("description") or ""),
                    kind=str(entry.get("kind") or ""),
                    spec=spec,
                )
            )
        return cls(checks=checks)


@dataclass
class Item:
    """One checked object within a report item."""

    name: str = ""
    status: str = ""
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "status": self.status, "details": dict(self.details or {})}


@dataclass
class ReportItem:
    """The results of one check."""

    name: str = ""
    status: str = ""
    meta_file: str = ""
    meta_type: str = ""
    items: list[Item] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "meta": {"file": self.meta_file, "type": self.meta_type},
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class Report:
    """The scanner's overall output."""

    name: str = ""
    status: str = ""
    meta_type: str = ""
    items: list[ReportItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the report as plain data in its on-disk layout."""
        return {
            "name": self.name,
            "status": self.status,
            "meta": {"type": self.meta_type},
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class QuerierConfig:
    """What a querier is given when it starts."""

    results: queue.Queue
    logger: logging.Logger
    complete: threading.Event = field(default_factory=threading.Event)


class Querier(Protocol):
    def start(self, cfg: QuerierConfig) -> None: ...


def is_sonobuoy_pod(pod_name: str) -> bool:
    """Whether a pod belongs to Sonobuoy or the scanner itself."""
    return pod_name == "sonobuoy" or pod_name.startswith("sonobuoy-reliability-scanner-job")


@dataclass
class Runner:
    """Runs the configured queriers and gathers their results."""

    config: ReliabilityConfig
    queriers: list[Any] = field(default_factory=list)
    results: queue.Queue = field(default_factory=queue.Queue)
    logger: logging.Logger = _log
    complete: threading.Event = field(default_factory=threading.Event)

    def run(self) -> list[threading.Thread]:
        """Start every querier in the background and return their threads."""
        fields = {"component": "runner", "phase": "run"}
        if not self.config.checks:
            self.logger.error("no checks configured", extra=fields)
            raise ConfigurationError("no checks configured")
        self.logger.info("waiting for checks to complete", extra=fields)
        threads = []
        for querier in self.queriers:
            cfg = QuerierConfig(results=self.results, logger=self.logger)
            thread = threading.Thread(target=querier.start, args=(cfg,), daemon=True)
            thread.start()
            threads.append(thread)
        return threads

    def build_report(self, check_count: int, name: str) -> Report:
        """Wait for the given number of check results and combine them."""
        self.logger.info("building", extra={"component": "runner", "phase": "report"})
        report = Report(name=name, status="passed")
        while len(report.items) < check_count:
            item = self.results.get()
            if any(check.status != "passed" for check in item.items):
                item.status = "failed"
            if item.status != "passed":
                report.status = "failed"
            report.items.append(item)
        return report

    def write_report(self, report: Report, path: str) -> None:
        """Write the report and the done file into a directory."""
        signal_path = f"{path}/done"
        results_path = f"{path}/reliability.yaml"
        self.logger.info(
            "writing results to %s", path, extra={"component": "runner", "phase": "report"}
        )
        text = yaml.safe_dump(report.to_dict(), sort_keys=False, default_flow_style=False)
        with open(results_path, "w", encoding="utf-8") as out:
            out.write(text)
        with open(signal_path, "w", encoding="utf-8") as out:
            out.write(results_path)