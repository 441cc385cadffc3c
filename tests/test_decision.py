"""Tests for the publish decision engine."""

from datetime import datetime, timedelta, timezone

import pytest

from analysis.decision import (
    NoOp,
    NoOpReason,
    PublishNew,
    RePromote,
    decide,
    is_time_for_new_version,
    process_remote_info,
)
from errors import InvariantViolation, MalformedVersion
from registry.npm.client import RemoteInfo
from versioning.semver import parse_strict

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def remote(latest="0.1.6", next_version=None, versions=None, content_hash="H1", days_ago=10):
    """Helper to build the published state of the registry artifact."""
    next_version = next_version or latest
    versions = versions or [latest]
    return RemoteInfo(
        dist_tags={"latest": latest, "next": next_version},
        versions={
            v: ({"typesPublisherContentHash": content_hash} if v == latest else {})
            for v in versions
        },
        time={"modified": (NOW - timedelta(days=days_ago)).isoformat()},
    )


class TestProcessRemoteInfo:
    """Tests for process_remote_info."""

    def test_extracts_state(self):
        processed = process_remote_info(remote(versions=["0.1.5", "0.1.6"]))
        assert processed.published_version == parse_strict("0.1.6")
        assert processed.highest_version == parse_strict("0.1.6")
        assert processed.content_hash == "H1"
        assert processed.last_modified == NOW - timedelta(days=10)

    def test_missing_content_hash_is_empty(self):
        info = remote()
        info.versions["0.1.6"] = {}
        assert process_remote_info(info).content_hash == ""

    def test_version_scheme_enforced(self):
        with pytest.raises(InvariantViolation):
            process_remote_info(remote(latest="1.0.0"))

    def test_next_must_track_highest(self):
        info = remote(latest="0.1.6", next_version="0.1.6", versions=["0.1.6", "0.1.7"])
        with pytest.raises(InvariantViolation, match="next"):
            process_remote_info(info)

    def test_malformed_latest(self):
        with pytest.raises(MalformedVersion):
            process_remote_info(remote(latest="garbage", versions=["0.1.0"]))

    def test_missing_latest(self):
        info = remote()
        del info.dist_tags["latest"]
        with pytest.raises(InvariantViolation):
            process_remote_info(info)


class TestDecide:
    """Tests for decide."""

    def test_unpromoted_version_is_repromoted(self):
        info = remote(latest="0.1.6", next_version="0.1.7", versions=["0.1.6", "0.1.7"], days_ago=1)
        decision = decide(process_remote_info(info), "H1", NOW)
        assert decision == RePromote(parse_strict("0.1.7"))

    def test_repromote_regardless_of_hash(self):
        info = remote(latest="0.1.6", next_version="0.1.7", versions=["0.1.6", "0.1.7"], days_ago=30)
        assert decide(process_remote_info(info), "other", NOW) == RePromote(parse_strict("0.1.7"))

    def test_unchanged(self):
        assert decide(process_remote_info(remote()), "H1", NOW) == NoOp(NoOpReason.UNCHANGED)

    def test_too_recent(self):
        info = remote(days_ago=3)
        assert decide(process_remote_info(info), "H2", NOW) == NoOp(NoOpReason.TOO_RECENT)

    def test_publish_new(self):
        decision = decide(process_remote_info(remote()), "H2", NOW)
        assert isinstance(decision, PublishNew)
        assert decision.version == parse_strict("0.1.7")

    def test_custom_min_days(self):
        info = remote(days_ago=3)
        assert decide(process_remote_info(info), "H2", NOW, min_days=2) == PublishNew(parse_strict("0.1.7"))


class TestIsTimeForNewVersion:
    """Tests for the seven day gate."""

    def test_exactly_seven_days_is_not_enough(self):
        assert not is_time_for_new_version(NOW - timedelta(days=7), NOW)

    def test_just_over_seven_days(self):
        assert is_time_for_new_version(NOW - timedelta(days=7, seconds=1), NOW)
