"""Exception hierarchy for registry publishing.

Every error carries the process exit code it maps to so the entrypoint can
surface it without a lookup table.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from constants import ExitCodes


class PublishError(Exception):
    """Base exception for all publishing errors."""

    exit_code = ExitCodes.INVARIANT_ERROR.value

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class MalformedVersion(PublishError, ValueError):
    """Raised when a version string is not a dotted numeric triple."""


class EmptyVersionSet(PublishError):
    """Raised when no element of a version list parses."""


class InvariantViolation(PublishError):
    """Remote state of the registry artifact is inconsistent.

    Indicates external corruption (version scheme or "next" tracking broken);
    nothing local can repair it.
    """


class MissingCachedInfo(PublishError):
    """Raised when packages have no entry in the npm info cache."""

    def __init__(self, missing: Iterable[str]):
        self.missing: List[str] = list(missing)
        super().__init__(f"{', '.join(self.missing)} not found in cached npm info.")


class RegressionDetected(PublishError):
    """A newer document is behind an older one."""

    exit_code = ExitCodes.REGRESSION_ERROR.value


class ExternalCallError(PublishError):
    """An npm CLI invocation or registry request failed."""

    exit_code = ExitCodes.CONNECTION_ERROR.value
