"""Sonobuoy results items and a writer that collects and saves them."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Any

import yaml

from sonoplugins import helper

STATUS_PASSED = "passed"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"
STATUS_TIMEOUT = "timeout"
STATUS_UNKNOWN = "unknown"

METADATA_DETAILS_OUTPUT = "output"
METADATA_DETAILS_FAILURE = "failure"
METADATA_TYPE_KEY = "type"
METADATA_TYPE_SUMMARY = "summary"

DEFAULT_OUTPUT_FILE_NAME = "sonobuoy_results.yaml"


@dataclass
class Item:
    """A node in the Sonobuoy results tree."""

    name: str = ""
    status: str = ""
    metadata: dict[str, str] = field(default_factory=dict)
    details: dict[str, Any] = field(default_factory=dict)
    items: list[Item] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the item as plain data, leaving out empty fields."""
        out: dict[str, Any] = {"name": self.name}
        if self.status:
            out["status"] = self.status
        if self.metadata:
            out["meta"] = dict(self.metadata)
        if self.details:
            out["details"] = dict(self.details)
        if self.items:
            out["items"] = [item.to_dict() for item in self.items]
        return out


def aggregate_status(items: list[Item]) -> str:
    """Compute the overall status of items, updating branches from their leaves."""
    if not items:
        return STATUS_UNKNOWN
    failed = unknown = False
    for item in items:
        if item.items:
            item.status = aggregate_status(item.items)
        if item.status in (STATUS_FAILED, STATUS_TIMEOUT):
            failed = True
        elif item.status not in (STATUS_PASSED, STATUS_SKIPPED):
            unknown = True
    if failed:
        return STATUS_FAILED
    if unknown:
        return STATUS_UNKNOWN
    return STATUS_PASSED


class SonobuoyResultsWriter:
    """Collects test results in memory and writes them as YAML.

    Without a results directory the YAML goes to standard output.
    """

    def __init__(self, results_dir: str = "", output_file: str = DEFAULT_OUTPUT_FILE_NAME) -> None:
        self.results_dir = results_dir
        self.output_file = output_file
        self.data = Item()

    @classmethod
    def from_environment(cls) -> SonobuoyResultsWriter:
        """Build a writer targeting the results directory named in the environment."""
        return cls(os.environ.get(helper.SONOBUOY_RESULTS_DIR_KEY, ""), DEFAULT_OUTPUT_FILE_NAME)

    def add_test(
        self,
        test_name: str,
        result: str,
        error: BaseException | str | None = None,
        output: str = "",
    ) -> None:
        """Record one test result."""
        item = Item(name=test_name, status=result)
        if output:
            item.details[METADATA_DETAILS_OUTPUT] = output
        if error is not None:
            item.details[METADATA_DETAILS_FAILURE] = str(error)
        self.data.items.append(item)

    def done(self, write_done_file: bool) -> None:
        """Write the collected results and optionally signal completion."""
        self.data.status = aggregate_status(self.data.items)
        text = yaml.safe_dump(self.data.to_dict(), sort_keys=False, default_flow_style=False)
        if self.results_dir:
            os.makedirs(self.results_dir, exist_ok=True)
            with open(os.path.join(self.results_dir, self.output_file), "w", encoding="utf-8") as out:
                out.write(text)
        else:
            sys.stdout.write(text)
        if write_done_file:
            helper.done()