"""Tests for the artifact manifest."""

import pytest

from constants import Channels
from publish.manifest import SchemaError, channel_package_name, generate_package_json, validate_manifest


class TestGeneratePackageJson:
    """Tests for per-channel manifests."""

    def test_npm(self):
        manifest = generate_package_json("types-registry", Channels.NPM, "0.1.11", "abc")
        assert manifest["name"] == "types-registry"
        assert manifest["version"] == "0.1.11"
        assert manifest["typesPublisherContentHash"] == "abc"
        assert manifest["repository"] == {
            "type": "git",
            "url": "https://github.com/Microsoft/types-publisher.git",
        }
        assert manifest["license"] == "MIT"
        assert "publishConfig" not in manifest

    def test_github_mirror(self):
        manifest = generate_package_json("@definitelytyped/types-registry", Channels.GITHUB, "0.1.11", "abc")
        assert manifest["repository"]["url"] == "https://github.com/DefinitelyTyped/DefinitelyTyped.git"
        assert manifest["publishConfig"] == {"registry": "https://npm.pkg.github.com/"}

    def test_channel_package_name(self):
        assert channel_package_name("types-registry", Channels.NPM) == "types-registry"
        assert channel_package_name("types-registry", Channels.GITHUB) == "@definitelytyped/types-registry"


class TestValidateManifest:
    """Tests for schema validation."""

    def test_missing_hash(self):
        manifest = generate_package_json("types-registry", Channels.NPM, "0.1.11", "abc")
        del manifest["typesPublisherContentHash"]
        with pytest.raises(SchemaError, match="typesPublisherContentHash"):
            validate_manifest(manifest)

    def test_bad_version(self):
        with pytest.raises(SchemaError, match="version"):
            generate_package_json("types-registry", Channels.NPM, "latest", "abc")
