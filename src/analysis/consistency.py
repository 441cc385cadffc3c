"""Structural "newer is not behind older" checks for JSON documents.

Compared values are lifted into a closed union of value types so the
comparator dispatches on an explicit variant instead of probing runtime
types at every step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from common.logging_utils import extra_context
from errors import RegressionDetected
from versioning.semver import compare, parse_tolerant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JsonString:
    value: str


@dataclass(frozen=True)
class JsonNumber:
    value: Union[int, float]


@dataclass(frozen=True)
class JsonBool:
    value: bool


@dataclass(frozen=True)
class JsonObject:
    fields: Dict[str, "JsonValue"]


JsonValue = Union[JsonString, JsonNumber, JsonBool, JsonObject]


def to_json_value(value: Any) -> JsonValue:
    """Lift a decoded JSON value into the JsonValue union.

    Arrays become objects keyed by their index. ``null`` is not supported.
    """
    if isinstance(value, (JsonString, JsonNumber, JsonBool, JsonObject)):
        return value
    # bool is checked before numbers since it subclasses int
    if isinstance(value, bool):
        return JsonBool(value)
    if isinstance(value, str):
        return JsonString(value)
    if isinstance(value, (int, float)):
        return JsonNumber(value)
    if isinstance(value, Mapping):
        return JsonObject({str(k): to_json_value(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return JsonObject({str(i): to_json_value(v) for i, v in enumerate(value)})
    raise TypeError(f"Unsupported JSON value: {value!r}")


def _kind(value: JsonValue) -> str:
    return type(value).__name__[4:].lower()


def _fields(value: Any) -> Optional[Dict[str, Any]]:
    """Children of a container keyed by name or index; None for scalars."""
    if isinstance(value, JsonObject):
        return dict(value.fields)
    if isinstance(value, Mapping):
        return {str(k): v for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return {str(i): v for i, v in enumerate(value)}
    return None


def _lift(key: str, parent: str, value: Any) -> JsonValue:
    try:
        return to_json_value(value)
    except TypeError as exc:
        raise RegressionDetected(f"{key} in {parent} has an unsupported value: {value!r}") from exc


def _string_not_behind(newer: str, older: str) -> bool:
    newer_version = parse_tolerant(newer)
    older_version = parse_tolerant(older)
    if newer_version is not None and older_version is not None:
        return compare(newer_version, older_version) >= 0
    return newer >= older


def _check_value(key: str, parent: str, newer: Any, older: Any) -> None:
    newer_fields = _fields(newer)
    older_fields = _fields(older)
    if newer_fields is not None and older_fields is not None:
        _assert_fields_newer(newer_fields, older_fields, key)
        return
    # containers are only lifted as far as needed to name their kind
    newer_value = JsonObject({}) if newer_fields is not None else _lift(key, parent, newer)
    older_value = JsonObject({}) if older_fields is not None else _lift(key, parent, older)
    if type(newer_value) is not type(older_value):
        raise RegressionDetected(
            f"{key} in {parent} changed type: newer is {_kind(newer_value)}, older is {_kind(older_value)}"
        )
    if isinstance(newer_value, JsonString):
        if not _string_not_behind(newer_value.value, older_value.value):
            raise RegressionDetected(
                f"{key} in {parent} did not match: newer[key] ({newer_value.value}) < older[key] ({older_value.value})"
            )
    elif isinstance(newer_value, JsonNumber):
        if not newer_value.value >= older_value.value:
            raise RegressionDetected(
                f"{key} in {parent} did not match: newer[key] ({newer_value.value}) < older[key] ({older_value.value})"
            )
    elif newer_value.value != older_value.value:
        raise RegressionDetected(
            f"{key} in {parent} did not match: newer[key] ({newer_value.value}) !== older[key] ({older_value.value})"
        )


def _assert_fields_newer(newer: Dict[str, Any], older: Dict[str, Any], parent: str) -> None:
    for key, older_value in older.items():
        if key not in newer:
            logger.info(
                "%s in %s was not found in newer -- assumed to be deprecated.",
                key,
                parent,
                extra=extra_context(event="validate", component="consistency", outcome="deprecated", key=key),
            )
            continue
        _check_value(key, parent, newer[key], older_value)


def assert_newer_is_superset_of_older(newer: Any, older: Any, parent: str = "") -> None:
    """Assert no field of ``older`` is ahead of the same field in ``newer``.

    Keys only in ``newer`` are ignored. Keys only in ``older`` are treated as
    deprecated and skipped. Values are lifted into the JsonValue union only
    where a key is compared, so an unsupported value under a skipped key is
    never looked at.

    Raises:
        RegressionDetected: on the first field where ``newer`` is behind, or
            where a compared field holds an unsupported value such as ``null``.
    """
    newer_fields = _fields(newer)
    older_fields = _fields(older)
    if newer_fields is None or older_fields is None:
        _check_value("<root>", parent, newer, older)
        return
    _assert_fields_newer(newer_fields, older_fields, parent)


def assert_entries_subset(
    installed: Mapping[str, Any],
    expected: Mapping[str, Any],
    not_needed: Iterable[str] = (),
) -> None:
    """Assert every package in an installed registry is still expected.

    A package may legitimately disappear only when it is listed as not needed.

    Raises:
        RegressionDetected: for the first unexpected package.
    """
    expected_entries = expected.get("entries", {})
    deprecated = set(not_needed)
    for key in installed.get("entries", {}):
        if key not in expected_entries and key not in deprecated:
            raise RegressionDetected(f"Actual registry has unexpected key {key}")
