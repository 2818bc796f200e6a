"""Checks that a cluster meets stated requirements, reported as plugin results."""

from __future__ import annotations

import argparse
import enum
import json
import logging
import os
import re
import subprocess
import sys
from dataclasses import dataclass, field
from decimal import Decimal
from functools import total_ordering
from typing import Any, Callable, Mapping

from sonoplugins import results
from sonoplugins.progress import ProgressReporter
from sonoplugins.quantity import Quantity, QuantityError, QuantityFormat, parse_quantity

DEFAULT_INPUT_FILE = "input.json"
PLUGIN_INPUT_DIR = "/tmp/sonobuoy/config"

log = logging.getLogger(__name__)


class RequirementError(Exception):
    """Raised when a check cannot be carried out."""


class CommandError(RequirementError):
    """Raised when a shell command exits unsuccessfully."""

    def __init__(self, message: str, output: bytes = b"") -> None:
        super().__init__(message)
        self.output = output


class VersionError(ValueError):
    """Raised when a version string cannot be parsed."""


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


class CheckType(str, enum.Enum):
    """The kinds of check that can be requested."""

    K8S_VERSION = "k8s_version"
    PROVIDER = "provider"
    NODE = "node"
    DEPLOYMENT = "deployment"


@dataclass
class Metadata:
    name: str = ""
    description: str = ""
    type: CheckType | str = ""
    optional: bool = False


@dataclass
class KubernetesVersionSpec:
    version: str = ""
    exact: bool = False


@dataclass
class ProviderSpec:
    in_: list[str] = field(default_factory=list)
    not_in: list[str] = field(default_factory=list)


@dataclass
class NodeSpec:
    label: str = ""
    memory: str = ""
    cpu: str = ""
    count: int = 0


@dataclass
class DeploymentSpec:
    name: str = ""
    annotation: str = ""
    version: str = ""


@dataclass
class Check:
    """One requested check with the settings for every check type."""

    meta: Metadata = field(default_factory=Metadata)
    k8s_version: KubernetesVersionSpec = field(default_factory=KubernetesVersionSpec)
    provider: ProviderSpec = field(default_factory=ProviderSpec)
    node: NodeSpec = field(default_factory=NodeSpec)
    deployment: DeploymentSpec = field(default_factory=DeploymentSpec)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Check:
        """Build a check from its JSON form."""
        meta = data.get("meta") or {}
        raw_type = str(meta.get("type") or "")
        try:
            check_type: CheckType | str = CheckType(raw_type)
        except ValueError:
            check_type = raw_type
        k8s = data.get("k8s_version") or {}
        provider = data.get("provider") or {}
        node = data.get("node") or {}
        deployment = data.get("deployment") or {}
        return cls(
            meta=Metadata(
                name=str(meta.get("name") or ""),
                description=str(meta.get("description") or ""),
                type=check_type,
                optional=bool(meta.get("optional", False)),
            ),
            k8s_version=KubernetesVersionSpec(
                version=str(k8s.get("version") or ""), exact=bool(k8s.get("exact", False))
            ),
            provider=ProviderSpec(
                in_=list(provider.get("in") or []), not_in=list(provider.get("not_in") or [])
            ),
            node=NodeSpec(
                label=str(node.get("label") or ""),
                memory=str(node.get("memory") or ""),
                cpu=str(node.get("cpu") or ""),
                count=int(node.get("count") or 0),
            ),
            deployment=DeploymentSpec(
                name=str(deployment.get("name") or ""),
                annotation=str(deployment.get("annotation") or ""),
                version=str(deployment.get("version") or ""),
            ),
        )


@dataclass
class CheckResult:
    fail: bool = False
    msgs: list[str] = field(default_factory=list)


_VERSION_RE = re.compile(
    r"^v?(?P<segments>[0-9]+(?:\.[0-9]+)*?)"
    r"(?:-(?P<pre1>[0-9]+[0-9A-Za-z\-~]*(?:\.[0-9A-Za-z\-~]+)*)"
    r"|-?(?P<pre2>[A-Za-z\-~]+[0-9A-Za-z\-~]*(?:\.[0-9A-Za-z\-~]+)*))?"
    r"(?:\+(?P<meta>[0-9A-Za-z\-~]+(?:\.[0-9A-Za-z\-~]+)*))?$"
)


def _compare_prerelease(left: str, right: str) -> int:
    if left == right:
        return 0
    if not left:
        return 1
    if not right:
        return -1
    left_parts, right_parts = left.split("."), right.split(".")
    for a, b in zip(left_parts, right_parts):
        if a == b:
            continue
        a_num, b_num = a.isdigit(), b.isdigit()
        if a_num and b_num:
            return -1 if int(a) < int(b) else 1
        if a_num:
            return -1
        if b_num:
            return 1
        return -1 if a < b else 1
    return (len(left_parts) > len(right_parts)) - (len(left_parts) < len(right_parts))


@total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """A version number with optional pre-release and build metadata."""

    segments: tuple[int, ...]
    prerelease: str = ""
    metadata: str = ""

    def compare(self, other: Version) -> int:
        """Return -1, 0 or 1; build metadata is ignored."""
        width = max(len(self.segments), len(other.segments))
        mine = self.segments + (0,) * (width - len(self.segments))
        theirs = other.segments + (0,) * (width - len(other.segments))
        if mine != theirs:
            return -1 if mine < theirs else 1
        return _compare_prerelease(self.prerelease, other.prerelease)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) < 0

    def __hash__(self) -> int:
        segments = list(self.segments)
        while segments and segments[-1] == 0:
            segments.pop()
        return hash((tuple(segments), self.prerelease))

    def __str__(self) -> str:
        text = ".".join(str(s) for s in self.segments)
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.metadata:
            text += f"+{self.metadata}"
        return text


def parse_version(text: str) -> Version:
    """Parse a version such as "v1.21.3" or "1.2.0-rc.1"."""
    match = _VERSION_RE.match(text)
    if not match:
        raise VersionError(f"Malformed version: {text}")
    segments = [int(part) for part in match.group("segments").split(".")]
    segments += [0] * (3 - len(segments))
    return Version(
        segments=tuple(segments),
        prerelease=match.group("pre1") or match.group("pre2") or "",
        metadata=match.group("meta") or "",
    )


def run_cmd(cmd_text: str) -> bytes:
    """Run a command through bash and return its combined output, trimmed."""
    args = ["/bin/bash", "-c", cmd_text]
    log.debug("%s %s", " ".join(args), args)
    try:
        completed = subprocess.run(
            args, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, check=False
        )
    except OSError as exc:
        raise CommandError(str(exc)) from exc
    out = completed.stdout or b""
    log.debug("Command: %s", " ".join(args))
    log.debug("Output: %s", out.decode(errors="replace"))
    if completed.returncode != 0:
        message = f"exit status {completed.returncode}"
        log.debug("Error returned: %s", message)
        raise CommandError(message, out.strip())
    return out.strip()


def fail_to_status(failed: bool) -> str:
    """Map a failure flag to a result status."""
    return results.STATUS_FAILED if failed else results.STATUS_PASSED


def _get_k8s_version() -> str:
    return run_cmd("kubectl version -o json|jq .serverVersion.gitVersion -r").decode()


def check_k8s_version(check: Check) -> CheckResult:
    """Compare the server's Kubernetes version with the wanted one."""
    found = _get_k8s_version()
    try:
        server = parse_version(found)
    except VersionError as exc:
        raise RequirementError(f"failed to parse server version {_quote(found)}: {exc}") from exc
    wanted_text = check.k8s_version.version
    try:
        wanted = parse_version(wanted_text)
    except VersionError as exc:
        raise RequirementError(
            f"failed to parse server version {_quote(wanted_text)}: {exc}"
        ) from exc
    if check.k8s_version.exact:
        return CheckResult(fail=server == wanted)
    return CheckResult(fail=server < wanted)


def _get_provider() -> str:
    return run_cmd(
        "kubectl get nodes -o json|jq '.items[]|.spec.providerID' -r| cut -d : -f1|sort|uniq"
    ).decode()


def check_provider(check: Check) -> CheckResult:
    """Check the cluster provider against the allowed and denied lists."""
    provider = _get_provider()
    return CheckResult(
        fail=provider not in check.provider.in_ or provider in check.provider.not_in
    )


def _get_nodes(spec: NodeSpec) -> list[dict[str, Any]]:
    raw = run_cmd(f"kubectl get nodes -o json -l {spec.label}")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RequirementError(str(exc)) from exc
    return list((data or {}).get("items") or [])


def _capacity(node: Mapping[str, Any], resource: str, fmt: QuantityFormat) -> Quantity:
    raw = ((node.get("status") or {}).get("capacity") or {}).get(resource)
    if raw is None:
        return Quantity(Decimal(0), fmt)
    try:
        return parse_quantity(str(raw))
    except QuantityError as exc:
        raise RequirementError(str(exc)) from exc


def check_nodes(check: Check) -> CheckResult:
    """Check that enough labelled nodes have the wanted CPU and memory."""
    spec = check.node
    nodes = _get_nodes(spec)
    result = CheckResult()

    want_cpu: Quantity | None = None
    want_memory: Quantity | None = None
    if spec.cpu:
        try:
            want_cpu = parse_quantity(spec.cpu)
        except QuantityError as exc:
            result.fail = True
            result.msgs.append(f"failed to parse desired CPU value {_quote(spec.cpu)}: {exc}")
            want_cpu = Quantity(Decimal(0))
    if spec.cpu:
        try:
            want_memory = parse_quantity(spec.memory)
        except QuantityError as exc:
            result.fail = True
            result.msgs.append(
                f"failed to parse desired memory value {_quote(spec.memory)}: {exc}."
            )
            want_memory = Quantity(Decimal(0))

    passed_all = 0
    for node in nodes:
        name = str((node.get("metadata") or {}).get("name") or "")
        node_failed = False
        if want_memory is not None:
            have = _capacity(node, "memory", QuantityFormat.BINARY_SI)
            if have < want_memory:
                result.msgs.append(
                    f"node {_quote(name)} failed to meet the desired memory: "
                    f"wanted {want_memory} but have {have}."
                )
                node_failed = True
        if want_cpu is not None:
            have = _capacity(node, "cpu", QuantityFormat.DECIMAL_SI)
            if have < want_cpu:
                result.msgs.append(
                    f"node {_quote(name)} failed to meet the desired CPU: "
                    f"wanted {want_cpu} but have {have}."
                )
                node_failed = True
        if not node_failed:
            passed_all += 1

    if spec.count > 0 and passed_all < spec.count:
        result.fail = True
        result.msgs.append(
            f"expected {spec.count} node(s) labeled {_quote(spec.label)} to match the "
            f"criteria but only {passed_all} of {len(nodes)} did."
        )
    return result


def _get_deployment(name: str) -> dict[str, Any] | None:
    raw = run_cmd(
        f"kubectl get deployments -A -o json|jq '.items[]|select(.metadata.name==\"{name}\")'"
    )
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RequirementError(str(exc)) from exc


def check_deployment(check: Check) -> CheckResult:
    """Check that a deployment's version annotation is at least the wanted version."""
    spec = check.deployment
    try:
        wanted = parse_version(spec.version)
    except VersionError as exc:
        raise RequirementError(
            f"failed to parse desired verstion {spec.version} as a semver value: {exc}"
        ) from exc

    deployment = _get_deployment(spec.name)
    if deployment is None:
        return CheckResult(
            fail=True, msgs=[f"failed to find any deployments with name {spec.name}"]
        )

    annotations = (deployment.get("metadata") or {}).get("annotations") or {}
    value = str(annotations.get(spec.annotation, ""))
    try:
        have = parse_version(value)
    except VersionError as exc:
        raise RequirementError(
            f"annotation {_quote(spec.annotation)} has value {_quote(value)} "
            f"which failed to parse using semver: {exc}"
        ) from exc

    if have < wanted:
        return CheckResult(fail=True, msgs=[f"wanted version >= {wanted} but got {have}"])
    return CheckResult()


CHECKERS: dict[CheckType, Callable[[Check], CheckResult]] = {
    CheckType.K8S_VERSION: check_k8s_version,
    CheckType.PROVIDER: check_provider,
    CheckType.NODE: check_nodes,
    CheckType.DEPLOYMENT: check_deployment,
}


def main(argv: list[str] | None = None) -> int:
    """Run every check from the input file and write the results."""
    parser = argparse.ArgumentParser(
        prog="requirements-check", description="Check that a cluster meets requirements."
    )
    parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG)

    input_file = DEFAULT_INPUT_FILE
    if os.environ.get("SONOBUOY_K8S_VERSION"):
        input_file = os.path.join(PLUGIN_INPUT_DIR, input_file)
    with open(input_file, encoding="utf-8") as handle:
        checks = [Check.from_mapping(entry) for entry in json.load(handle) or []]

    writer = results.SonobuoyResultsWriter.from_environment()
    reporter = ProgressReporter(len(checks))

    for check in checks:
        checker = CHECKERS.get(check.meta.type)
        if checker is None:
            sys.stderr.write(f"Unknown check type: {check.meta.type}")
            raise ValueError(f"unknown check type: {check.meta.type}")
        reporter.start_test(check.meta.name)
        error: RequirementError | None = None
        try:
            result = checker(check)
        except RequirementError as exc:
            error = exc
            result = CheckResult(fail=True, msgs=[str(exc)])
        status = fail_to_status(result.fail)
        log.debug("Completed test %s, result: %s", _quote(check.meta.name), status)
        writer.add_test(check.meta.name, status, error, "")
        reporter.stop_test(check.meta.name, result.fail, False, error)

    try:
        writer.done(True)
    except OSError as exc:
        sys.stderr.write(str(exc))
        return 1
    return 0