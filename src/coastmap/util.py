"""Logging setup and run-manifest output for map builds."""

from __future__ import annotations

import hashlib
import json
import logging
import subprocess
from pathlib import Path
from typing import Any

from .models import RunManifest


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_FILE_NAME = "build.log"
MANIFEST_SUFFIX = ".manifest.json"

# Third-party loggers that flood DEBUG output while rendering or fetching.
_NOISY_LOGGERS = ("matplotlib", "PIL", "urllib3", "pyogrio", "fiona")


def setup_logging(logs_dir: Path | None = None, verbose: bool = False) -> Path | None:
    """Log to the console and, when `logs_dir` is given, to `build.log` in it.

    Returns the log file path, if any.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_file = None
    if logs_dir is not None:
        logs_dir.mkdir(parents=True, exist_ok=True)
        log_file = logs_dir / LOG_FILE_NAME
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))
    return log_file


def manifest_path_for(image_path: Path) -> Path:
    """`map.png` -> `map.manifest.json`, beside the image."""
    return image_path.with_name(f"{image_path.stem}{MANIFEST_SUFFIX}")


def write_run_manifest(image_path: Path, manifest: RunManifest) -> Path:
    path = manifest_path_for(image_path)
    write_json(path, manifest.to_dict())
    return path


def write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, sort_keys=True, ensure_ascii=False)
        fh.write("\n")


def sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def detect_git_commit(cwd: Path) -> str | None:
    """Commit of the repository holding the config, if there is one."""
    try:
        proc = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            cwd=str(cwd),
            capture_output=True,
            text=True,
            check=True,
        )
    except (FileNotFoundError, subprocess.CalledProcessError):
        return None
    return proc.stdout.strip() or None
