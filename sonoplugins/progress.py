"""Progress updates sent to the local Sonobuoy worker."""

from __future__ import annotations

import json
import logging
import os
import threading
import urllib.error
import urllib.request

SONOBUOY_PROGRESS_PORT_ENV_KEY = "SONOBUOY_PROGRESS_PORT"
_ZERO_TIMESTAMP = "0001-01-01T00:00:00Z"
_TIMEOUT_SECONDS = 30

log = logging.getLogger(__name__)


class ProgressError(Exception):
    """Raised when a progress update cannot be delivered."""


class ProgressReporter:
    """Tracks test progress and reports it over HTTP.

    Without a configured port the reporter is disabled and sends nothing.
    """

    def __init__(self, total: int = 0) -> None:
        self.total = total
        self.completed = 0
        self.failures: list[str] = []
        self.errors: list[str] = []
        port = os.environ.get(SONOBUOY_PROGRESS_PORT_ENV_KEY, "")
        if not port:
            log.debug(
                "No %s env var set; no progress updates will be sent.",
                SONOBUOY_PROGRESS_PORT_ENV_KEY,
            )
            self.port: str | None = None
            self.disabled = True
            return
        log.debug(
            "ProgressReporter created with %s total tests expected. "
            "Will send requests to localhost:%s",
            total,
            port,
        )
        self.port = port
        self.disabled = False

    def _send_quietly(self, msg: str) -> None:
        try:
            self.send_message(msg)
        except ProgressError as exc:
            log.debug("Progress update not delivered: %s", exc)

    def start_test(self, name: str) -> None:
        """Report the start of a test."""
        self._send_quietly(f"Test started: {name}")

    def stop_test(self, name: str, failed: bool, skipped: bool, error: BaseException | None = None) -> None:
        """Record the outcome of a test and report it."""
        if failed:
            self.failures.append(name)
            msg = f"Test failed: {name}"
        elif skipped:
            self.completed += 1
            msg = f"Test skipped: {name}"
        elif error is not None:
            self.completed += 1
            self.errors.append(name)
            msg = f"Test errored: {name} {error}"
        else:
            self.completed += 1
            msg = f"Test completed: {name}"
        self._send_quietly(msg)

    def _payload(self, msg: str) -> dict:
        update = {
            "name": "",
            "node": "",
            "timestamp": _ZERO_TIMESTAMP,
            "msg": msg,
            "total": self.total,
            "completed": self.completed,
        }
        if self.errors:
            update["errors"] = list(self.errors)
        if self.failures:
            update["failures"] = list(self.failures)
        return update

    def send_message(self, msg: str) -> None:
        """Send a message and wait for the response."""
        if self.port is None:
            if not self.disabled:
                log.warning("Progress update attempted but no client available.")
            return

        body = json.dumps(self._payload(msg)).encode("utf-8")
        request = urllib.request.Request(
            f"http://localhost:{self.port}/progress", data=body, method="POST"
        )
        try:
            with urllib.request.urlopen(request, timeout=_TIMEOUT_SECONDS) as response:
                status = response.status
                reason = response.reason
        except urllib.error.HTTPError as exc:
            raise ProgressError(
                f"unexpected HTTP Status from progress update: {exc.code} {exc.reason} ({exc.code})"
            ) from exc
        except (urllib.error.URLError, OSError) as exc:
            raise ProgressError(f"failed to POST progress update: {exc}") from exc
        if status != 200:
            raise ProgressError(
                f"unexpected HTTP Status from progress update: {status} {reason} ({status})"
            )

    def send_message_async(self, msg: str) -> threading.Thread:
        """Send a message in the background; failures are logged."""

        def _worker() -> None:
            try:
                self.send_message(msg)
            except ProgressError as exc:
                log.error("Failed to send progress update: %s", exc)

        thread = threading.Thread(target=_worker, daemon=True)
        thread.start()
        return thread