"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    INVARIANT_ERROR = 4
    REGRESSION_ERROR = 5
    CHANNEL_FAILED = 6


class Channels(Enum):
    """Publish destinations for the registry artifact.

    Args:
        Enum (string): Channel names.
    """

    NPM = "npm"
    GITHUB = "github"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration defaults; not intended to provide behavior.
    """

    ARTIFACT_NAME = "types-registry"
    MIRROR_SCOPE = "@definitelytyped"
    REGISTRY_URL_NPM = "https://registry.npmjs.org/"
    REGISTRY_URL_GITHUB = "https://npm.pkg.github.com/"
    REPOSITORY_URL_NPM = "https://github.com/Microsoft/types-publisher.git"
    REPOSITORY_URL_GITHUB = "https://github.com/DefinitelyTyped/DefinitelyTyped.git"
    OUTPUT_DIR = "output"
    VALIDATE_DIR = "validateOutput"
    PACKAGES_FILE = "data/packages.json"
    NPM_INFO_CACHE_FILE = "cache/npmInfo.json"
    NOT_NEEDED_FILE = None
    NPM_BINARY = "npm"
    NPM_INSTALL_FLAGS = ["--ignore-scripts", "--no-shrinkwrap", "--no-package-lock", "--no-bin-links"]
    README = (
        "This package contains a listing of all packages published to the @types scope on NPM.\n"
        "Generated by [types-publisher](https://github.com/Microsoft/types-publisher)."
    )
    DESCRIPTION = "A registry of TypeScript declaration file packages published within the @types scope."
    KEYWORDS = ["TypeScript", "declaration", "files", "types", "packages"]
    AUTHOR = "Microsoft Corp."
    LICENSE = "MIT"

    LATEST_TAG = "latest"
    NEXT_TAG = "next"
    CONTENT_HASH_FIELD = "typesPublisherContentHash"
    REQUIRED_MAJOR = 0
    REQUIRED_MINOR = 1
    COOLDOWN_SECONDS = 60
    MIN_DAYS_BETWEEN_PUBLISHES = 7

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "REGPUB_LOG_LEVEL"
    ENV_PREFIX = "REGPUB_"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    SUBPROCESS_TIMEOUT = 600
