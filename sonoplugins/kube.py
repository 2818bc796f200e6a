"""A small Kubernetes client that reads cluster objects through kubectl."""

from __future__ import annotations

import json
import shutil
import subprocess
from typing import Any


class KubeError(Exception):
    """Raised when the cluster cannot be queried."""


class KubeClient:
    """Lists Kubernetes objects as dictionaries by running kubectl."""

    def __init__(self, kubectl: str = "kubectl") -> None:
        self.kubectl = kubectl

    def list(
        self,
        resource: str,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> list[dict[str, Any]]:
        """Return the items of a resource.

        A namespace of None adds no namespace flag, an empty string lists
        across all namespaces, and any other value restricts to that namespace.
        """
        args = [self.kubectl, "get", resource, "-o", "json"]
        if namespace == "":
            args.append("--all-namespaces")
        elif namespace is not None:
            args += ["-n", namespace]
        if label_selector:
            args += ["-l", label_selector]
        try:
            completed = subprocess.run(args, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise KubeError(f"unable to run {self.kubectl}: {exc}") from exc
        if completed.returncode != 0:
            raise KubeError(
                f"listing {resource} failed: {completed.stderr.strip() or completed.returncode}"
            )
        try:
            data = json.loads(completed.stdout or "{}")
        except json.JSONDecodeError as exc:
            raise KubeError(f"invalid JSON listing {resource}: {exc}") from exc
        return list(data.get("items") or [])


def get_kube_client() -> KubeClient:
    """Return a client using the kubectl found on the path."""
    path = shutil.which("kubectl")
    if path is None:
        raise KubeError('unable to create Client Config: "kubectl not found"')
    return KubeClient(path)