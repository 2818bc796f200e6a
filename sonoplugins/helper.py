"""Helpers for plugins: locating the results directory and signalling completion."""

from __future__ import annotations

import logging
import os
import tarfile

SONOBUOY_RESULTS_DIR_KEY = "SONOBUOY_RESULTS_DIR"
DONE_FILE_NAME = "done"
DEFAULT_TARBALL_NAME = "results.tar.gz"

log = logging.getLogger(__name__)


def get_results_dir() -> str:
    """Return the results directory from the environment, or an empty string."""
    return os.environ.get(SONOBUOY_RESULTS_DIR_KEY, "")


def write_done(results_path: str) -> None:
    """Write the done file, whose content is the path of the results to submit."""
    done_path = os.path.join(get_results_dir(), DONE_FILE_NAME)
    try:
        with open(done_path, "w", encoding="utf-8") as handle:
            handle.write(results_path)
    except OSError as exc:
        raise OSError(f"failed write done file: {exc}") from exc


def _dir_to_tarball(directory: str, output: str) -> None:
    output_abs = os.path.abspath(output)
    with tarfile.open(output, "w:gz") as tar:
        for root, dirs, files in os.walk(directory):
            dirs.sort()
            for name in sorted(files):
                full = os.path.join(root, name)
                if os.path.abspath(full) == output_abs:
                    continue
                tar.add(full, arcname=os.path.relpath(full, directory))


def done() -> None:
    """Archive the results directory and write the done file.

    When no results directory is configured, nothing is archived or written.
    """
    directory = get_results_dir()
    if not directory:
        log.warning(
            "No %s set, no results directory will be archived and no 'done file' will be written.",
            SONOBUOY_RESULTS_DIR_KEY,
        )
        return

    output_file = os.path.join(directory, DEFAULT_TARBALL_NAME)
    log.debug("Tarring up directory: %s", directory)
    try:
        _dir_to_tarball(directory, output_file)
    except (OSError, tarfile.TarError) as exc:
        raise OSError(f"failed to tar up entire results directory: {exc}") from exc
    log.debug("Writing done file...")
    write_done(output_file)
    log.debug("Done file written without error.")