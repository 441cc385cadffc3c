"""Build the registry document from cached per-package npm info."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from constants import Constants
from errors import MissingCachedInfo
from registry.npm.client import RemoteInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageSummary:
    """One upstream package whose dist-tags are summarized."""

    name: str
    escaped_publish_name: str


@dataclass(frozen=True)
class Registry:
    """The registry document: package name -> dist-tag -> version."""

    entries: Dict[str, Dict[str, str]]

    def to_dict(self) -> Dict[str, Dict[str, Dict[str, str]]]:
        return {"entries": self.entries}

    def to_json(self) -> str:
        """Compact JSON text, as written to ``index.json``."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    def content_hash(self) -> str:
        return hashlib.sha256(self.to_json().encode("utf-8")).hexdigest()


def filter_tags(tags: Mapping[str, str]) -> Dict[str, str]:
    """Keep "latest" and every tag pointing somewhere other than "latest"."""
    latest_version = tags.get(Constants.LATEST_TAG)
    return {
        tag: version
        for tag, version in tags.items()
        if tag == Constants.LATEST_TAG or version != latest_version
    }


def build_registry(
    packages: Sequence[PackageSummary],
    metadata_lookup: Callable[[str], Optional[RemoteInfo]],
) -> Registry:
    """Build the registry from cached info.

    Cached info is used unconditionally; it is expected to be fresh.

    Raises:
        MissingCachedInfo: listing every package without a cache entry.
    """
    entries: Dict[str, Dict[str, str]] = {}
    missing: List[str] = []
    for package in packages:
        info = metadata_lookup(package.escaped_publish_name)
        if info is None:
            missing.append(package.escaped_publish_name)
            continue
        entries[package.name] = filter_tags(info.dist_tags)
    if missing:
        raise MissingCachedInfo(missing)
    logger.info("Built registry with %d entries", len(entries))
    return Registry(entries)


def load_packages(path: str) -> List[PackageSummary]:
    """Read the package list, a JSON array of ``{name, escapedPublishName}``."""
    with open(path, encoding="utf-8") as fh:
        raw = json.load(fh)
    return [
        PackageSummary(name=item["name"], escaped_publish_name=item.get("escapedPublishName", item["name"]))
        for item in raw
    ]


def load_not_needed(path: Optional[str]) -> List[str]:
    """Read names of deprecated packages that may vanish from the registry."""
    if not path:
        return []
    with open(path, encoding="utf-8") as fh:
        raw = json.load(fh)
    return [item["name"] if isinstance(item, dict) else str(item) for item in raw]
