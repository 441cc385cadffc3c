"""Tests for building the registry document."""

import hashlib
import json

import pytest

from errors import MissingCachedInfo
from registry.builder import (
    PackageSummary,
    Registry,
    build_registry,
    filter_tags,
    load_not_needed,
    load_packages,
)
from registry.npm.client import RemoteInfo


def info(**dist_tags):
    return RemoteInfo(dist_tags=dist_tags, versions={})


class TestFilterTags:
    """Tests for dist-tag filtering."""

    def test_drops_tags_equal_to_latest(self):
        tags = {"latest": "1.0.0", "next": "1.1.0", "beta": "1.0.0"}
        assert filter_tags(tags) == {"latest": "1.0.0", "next": "1.1.0"}

    def test_latest_only(self):
        assert filter_tags({"latest": "2.0.0"}) == {"latest": "2.0.0"}

    def test_all_distinct_kept(self):
        tags = {"latest": "1.0.0", "ts3.5": "0.9.0", "ts3.6": "0.9.5"}
        assert filter_tags(tags) == tags


class TestBuildRegistry:
    """Tests for build_registry."""

    def test_builds_entries_by_package_name(self):
        packages = [
            PackageSummary("react", "@types/react"),
            PackageSummary("node", "@types/node"),
        ]
        cache = {
            "@types/react": info(latest="16.9.2", next="17.0.0"),
            "@types/node": info(latest="12.7.1", beta="12.7.1"),
        }
        registry = build_registry(packages, cache.get)
        assert registry.entries == {
            "react": {"latest": "16.9.2", "next": "17.0.0"},
            "node": {"latest": "12.7.1"},
        }

    def test_missing_cache_lists_every_package(self):
        packages = [
            PackageSummary("a", "@types/a"),
            PackageSummary("b", "@types/b"),
            PackageSummary("c", "@types/c"),
        ]
        cache = {"@types/a": info(latest="1.0.0")}
        with pytest.raises(MissingCachedInfo) as excinfo:
            build_registry(packages, cache.get)
        assert excinfo.value.missing == ["@types/b", "@types/c"]
        assert "@types/b, @types/c not found in cached npm info." in str(excinfo.value)


class TestRegistryDocument:
    """Tests for serialization and hashing."""

    def test_compact_json(self):
        registry = Registry({"p": {"latest": "1.0.0"}})
        assert registry.to_json() == '{"entries":{"p":{"latest":"1.0.0"}}}'

    def test_content_hash_is_sha256_of_json(self):
        registry = Registry({"p": {"latest": "1.0.0"}})
        expected = hashlib.sha256(registry.to_json().encode("utf-8")).hexdigest()
        assert registry.content_hash() == expected

    def test_content_hash_changes_with_content(self):
        assert Registry({"p": {"latest": "1.0.0"}}).content_hash() != \
            Registry({"p": {"latest": "1.0.1"}}).content_hash()


class TestLoaders:
    """Tests for input file loaders."""

    def test_load_packages(self, tmp_path):
        path = tmp_path / "packages.json"
        path.write_text(json.dumps([
            {"name": "react", "escapedPublishName": "@types/react"},
            {"name": "plain"},
        ]))
        assert load_packages(str(path)) == [
            PackageSummary("react", "@types/react"),
            PackageSummary("plain", "plain"),
        ]

    def test_load_not_needed(self, tmp_path):
        path = tmp_path / "notNeeded.json"
        path.write_text(json.dumps(["left-pad", {"name": "moment"}]))
        assert load_not_needed(str(path)) == ["left-pad", "moment"]

    def test_load_not_needed_without_file(self):
        assert load_not_needed(None) == []
