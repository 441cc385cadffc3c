"""Decide whether to re-promote, publish a new registry version, or do nothing."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Union

from constants import Constants
from common.logging_utils import extra_context
from errors import InvariantViolation
from registry.npm.client import RemoteInfo
from versioning.semver import Semver, max_of, next_patch, parse_strict

logger = logging.getLogger(__name__)


class NoOpReason(Enum):
    """Why no new version is published."""

    UNCHANGED = "No new packages published"
    TOO_RECENT = "Was modified less than a week ago"


@dataclass(frozen=True)
class RePromote:
    """A published version was never tagged latest; tag it now."""

    version: Semver


@dataclass(frozen=True)
class PublishNew:
    version: Semver


@dataclass(frozen=True)
class NoOp:
    reason: NoOpReason


PublishDecision = Union[RePromote, PublishNew, NoOp]


@dataclass(frozen=True)
class ProcessedRemoteInfo:
    """The facts about the published registry artifact the decision needs."""

    published_version: Semver
    highest_version: Semver
    content_hash: str
    last_modified: datetime


def process_remote_info(info: RemoteInfo) -> ProcessedRemoteInfo:
    """Extract and sanity-check the published state of the registry artifact.

    Raises:
        InvariantViolation: if "latest" is not a 0.1.x version, if "next" does
            not track the highest published version, or if the modified time
            is missing.
        MalformedVersion: if "latest" is not a version at all.
    """
    latest = info.dist_tags.get(Constants.LATEST_TAG)
    if latest is None:
        raise InvariantViolation("Registry artifact has no latest dist-tag")
    published = parse_strict(latest)
    if (published.major, published.minor) != (Constants.REQUIRED_MAJOR, Constants.REQUIRED_MINOR):
        raise InvariantViolation(
            f"Published version {published} is outside the "
            f"{Constants.REQUIRED_MAJOR}.{Constants.REQUIRED_MINOR}.x scheme"
        )

    highest = max_of(info.versions.keys())
    next_tag = info.dist_tags.get(Constants.NEXT_TAG)
    if highest.version_string != next_tag:
        raise InvariantViolation(f"Highest version {highest} does not match next tag {next_tag}")

    version_info = info.versions.get(published.version_string) or {}
    content_hash = version_info.get(Constants.CONTENT_HASH_FIELD) or ""

    last_modified = info.last_modified
    if last_modified is None:
        raise InvariantViolation("Registry artifact has no modified time")
    return ProcessedRemoteInfo(published, highest, content_hash, last_modified)


def is_time_for_new_version(last_modified: datetime, now: Optional[datetime] = None,
                            min_days: int = Constants.MIN_DAYS_BETWEEN_PUBLISHES) -> bool:
    """True when strictly more than ``min_days`` have passed since ``last_modified``."""
    now = now or datetime.now(timezone.utc)
    return now - last_modified > timedelta(days=min_days)


def decide(remote: ProcessedRemoteInfo, fresh_content_hash: str,
           now: Optional[datetime] = None,
           min_days: int = Constants.MIN_DAYS_BETWEEN_PUBLISHES) -> PublishDecision:
    """Choose exactly one action for this run."""
    if remote.highest_version != remote.published_version:
        logger.info("Old version of the registry was never tagged latest, so updating")
        decision: PublishDecision = RePromote(remote.highest_version)
    elif remote.content_hash != fresh_content_hash and is_time_for_new_version(
            remote.last_modified, now, min_days):
        logger.info("New packages have been added, so publishing a new registry.")
        decision = PublishNew(next_patch(remote.published_version))
    else:
        reason = NoOpReason.UNCHANGED if remote.content_hash == fresh_content_hash else NoOpReason.TOO_RECENT
        logger.info("%s, so no need to publish new registry.", reason.value)
        decision = NoOp(reason)
    logger.debug(
        "Publish decision",
        extra=extra_context(event="decision", component="decision", outcome=type(decision).__name__)
    )
    return decision
