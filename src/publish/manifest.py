"""Generate and validate the per-channel package manifest (package.json)."""

from __future__ import annotations

from typing import Any, Dict

from jsonschema import Draft7Validator

from constants import Channels, Constants


class SchemaError(ValueError):
    """Raised when a manifest fails to validate against its schema."""


MANIFEST_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": [
        "name", "version", "description", "repository", "keywords",
        "author", "license", Constants.CONTENT_HASH_FIELD,
    ],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "version": {"type": "string", "pattern": r"^\d+\.\d+\.\d+"},
        "description": {"type": "string"},
        "repository": {
            "type": "object",
            "required": ["type", "url"],
            "properties": {"type": {"type": "string"}, "url": {"type": "string"}},
        },
        "keywords": {"type": "array", "items": {"type": "string"}},
        "author": {"type": "string"},
        "license": {"type": "string"},
        Constants.CONTENT_HASH_FIELD: {"type": "string"},
        "publishConfig": {
            "type": "object",
            "required": ["registry"],
            "properties": {"registry": {"type": "string"}},
        },
    },
}


def channel_package_name(artifact_name: str, channel: Channels) -> str:
    """The mirror publishes under a scope; npm uses the bare name."""
    if channel == Channels.GITHUB:
        return f"{Constants.MIRROR_SCOPE}/{artifact_name}"
    return artifact_name


def validate_manifest(manifest: Dict[str, Any]) -> None:
    """Validate strictly and raise SchemaError on the first problem."""
    validator = Draft7Validator(MANIFEST_SCHEMA)
    errs = sorted(validator.iter_errors(manifest), key=lambda e: list(e.path))
    if errs:
        first = errs[0]
        path = "/".join([str(p) for p in first.path])
        raise SchemaError(f"Invalid manifest at '{path}': {first.message}")


def generate_package_json(name: str, channel: Channels, version: str, content_hash: str,
                          mirror_registry_url: str = Constants.REGISTRY_URL_GITHUB) -> Dict[str, Any]:
    """Build the manifest published alongside ``index.json``."""
    manifest: Dict[str, Any] = {
        "name": name,
        "version": version,
        "description": Constants.DESCRIPTION,
        "repository": {
            "type": "git",
            "url": Constants.REPOSITORY_URL_GITHUB if channel == Channels.GITHUB else Constants.REPOSITORY_URL_NPM,
        },
        "keywords": list(Constants.KEYWORDS),
        "author": Constants.AUTHOR,
        "license": Constants.LICENSE,
        Constants.CONTENT_HASH_FIELD: content_hash,
    }
    if channel == Channels.GITHUB:
        manifest["publishConfig"] = {"registry": mirror_registry_url}
    validate_manifest(manifest)
    return manifest
