"""NPM registry client: package info, publish, dist-tags and install.

Metadata reads go over HTTP; publish, dist-tag and install go through the
npm CLI so the user's npm authentication setup applies unchanged.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence
from urllib.parse import quote

from constants import Constants
from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled, safe_command, safe_url, Timer
from errors import ExternalCallError

logger = logging.getLogger(__name__)


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    """Parse an npm ISO-8601 timestamp into an aware datetime."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class RemoteInfo:
    """Snapshot of what is currently published under one package name."""

    dist_tags: Dict[str, str]
    versions: Dict[str, Dict[str, Any]]
    time: Dict[str, str] = field(default_factory=dict)

    @property
    def last_modified(self) -> Optional[datetime]:
        return _parse_time(self.time.get("modified"))

    @classmethod
    def from_packument(cls, data: Mapping[str, Any]) -> "RemoteInfo":
        """Build from a registry packument (``dist-tags``) or a cache entry (``distTags``)."""
        dist_tags = data.get("dist-tags", data.get("distTags")) or {}
        return cls(
            dist_tags=dict(dist_tags),
            versions={k: dict(v or {}) for k, v in (data.get("versions") or {}).items()},
            time=dict(data.get("time") or {}),
        )


def escape_package_name(name: str) -> str:
    """Escape a (possibly scoped) package name for a registry URL."""
    return quote(name, safe="@")


class NpmInfoClient:
    """Uncached reads of package metadata from a registry."""

    def __init__(self, registry_url: str = Constants.REGISTRY_URL_NPM):
        self.registry_url = registry_url if registry_url.endswith("/") else registry_url + "/"

    def fetch_npm_info(self, escaped_name: str) -> RemoteInfo:
        """Fetch the packument for ``escaped_name``.

        Raises:
            ExternalCallError: if the registry does not return a packument.
        """
        url = f"{self.registry_url}{escaped_name}"
        with Timer() as timer:
            status_code, _, data = get_json(url, context="npm")
        if status_code != 200 or not isinstance(data, dict):
            logger.warning(
                "HTTP non-2xx handled",
                extra=extra_context(
                    event="http_response",
                    outcome="handled_non_2xx",
                    status_code=status_code,
                    duration_ms=timer.duration_ms(),
                    target=safe_url(url),
                    package_manager="npm"
                )
            )
            raise ExternalCallError(f"Could not fetch npm info for {escaped_name} (status {status_code})")
        return RemoteInfo.from_packument(data)


class CachedNpmInfoClient:
    """Read-only view over a pre-populated npm info cache file.

    The cache maps escaped package names to ``{distTags, versions, time}``.
    """

    def __init__(self, entries: Mapping[str, RemoteInfo]):
        self._entries = dict(entries)

    @classmethod
    def load(cls, path: str) -> "CachedNpmInfoClient":
        with open(path, encoding="utf-8") as fh:
            raw = json.load(fh)
        logger.info("Loaded %d cached npm info entries from %s", len(raw), path)
        return cls({name: RemoteInfo.from_packument(entry) for name, entry in raw.items()})

    def get_npm_info_from_cache(self, escaped_name: str) -> Optional[RemoteInfo]:
        return self._entries.get(escaped_name)


def _run_npm(args: Sequence[str], *, cwd: Optional[str] = None) -> str:
    """Run the npm CLI and return its stdout."""
    logger.info("Running: %s", safe_command(args))
    try:
        result = subprocess.run(  # noqa: S603
            list(args),
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=Constants.SUBPROCESS_TIMEOUT,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise ExternalCallError(f"{args[0]} {args[1]} failed: {exc}") from exc
    if result.returncode != 0:
        raise ExternalCallError(
            f"{args[0]} {args[1]} exited with {result.returncode}: {result.stderr.strip()}"
        )
    if result.stderr.strip():
        logger.warning("%s", result.stderr.strip())
    return result.stdout


class NpmPublishClient:
    """Publishes packages and moves dist-tags for one registry."""

    def __init__(self, registry_url: str, npm_binary: str = Constants.NPM_BINARY,
                 default_tag: str = Constants.NEXT_TAG):
        self.registry_url = registry_url
        self.npm_binary = npm_binary
        self.default_tag = default_tag

    def publish(self, package_dir: str, manifest: Mapping[str, Any], dry: bool) -> None:
        """Publish ``package_dir`` under the default tag."""
        name, version = manifest["name"], manifest["version"]
        if dry:
            logger.info("(dry) Skip publishing of %s@%s", name, version)
            return
        logger.info("Publishing %s@%s with tag %s", name, version, self.default_tag)
        _run_npm(
            [self.npm_binary, "publish", package_dir, "--tag", self.default_tag,
             "--registry", self.registry_url],
        )

    def tag(self, package_name: str, version: str, dist_tag: str, dry: bool) -> None:
        """Point ``dist_tag`` of ``package_name`` at ``version``."""
        if dry:
            logger.info("(dry) Skip tag of %s@%s as %s", package_name, version, dist_tag)
            return
        logger.info("Tag %s@%s as %s", package_name, version, dist_tag)
        _run_npm(
            [self.npm_binary, "dist-tag", "add", f"{package_name}@{version}", dist_tag,
             "--registry", self.registry_url],
        )


VALIDATE_MANIFEST = {
    "name": "validate",
    "version": "0.0.0",
    "description": "description",
    "readme": "",
    "license": "",
    "repository": {},
}


class NpmInstaller:
    """Installs a published registry artifact into a scratch directory."""

    def __init__(self, validate_dir: str, registry_url: str,
                 npm_binary: str = Constants.NPM_BINARY,
                 install_flags: Optional[List[str]] = None):
        self.validate_dir = validate_dir
        self.registry_url = registry_url
        self.npm_binary = npm_binary
        self.install_flags = list(Constants.NPM_INSTALL_FLAGS if install_flags is None else install_flags)

    def install(self, package_name: str, dist_tag: str = Constants.NEXT_TAG) -> Dict[str, Any]:
        """Install ``package_name@dist_tag`` and return its ``index.json``."""
        shutil.rmtree(self.validate_dir, ignore_errors=True)
        os.makedirs(self.validate_dir)
        with open(os.path.join(self.validate_dir, "package.json"), "w", encoding="utf-8") as fh:
            json.dump(VALIDATE_MANIFEST, fh, indent=4)

        _run_npm(
            [self.npm_binary, "install", f"{package_name}@{dist_tag}",
             "--registry", self.registry_url, *self.install_flags],
            cwd=self.validate_dir,
        )
        index_path = os.path.join(self.validate_dir, "node_modules", *package_name.split("/"), "index.json")
        if is_debug_enabled(logger):
            logger.debug(
                "Reading installed registry",
                extra=extra_context(event="install", component="client", target=index_path)
            )
        try:
            with open(index_path, encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise ExternalCallError(f"Installed {package_name} has no readable index.json: {exc}") from exc
