"""publish-registry - publish the dist-tag registry artifact.

Fetches the published state of the artifact, builds a fresh registry from the
npm info cache, decides what to do and runs the per-channel workflows.

    Returns:
        int: Exit code
"""
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from analysis.decision import decide, process_remote_info, PublishDecision
from args import parse_args
from cli_config import load_settings, PublisherSettings
from common.logging_utils import add_file_handler, configure_logging, extra_context, is_debug_enabled
from constants import Channels, ExitCodes
from errors import PublishError
from publish.workflow import build_channel_workflows, ChannelResult, ChannelWorkflow, PublishOrchestrator
from registry.builder import build_registry, load_not_needed, load_packages, PackageSummary
from registry.npm.client import CachedNpmInfoClient, escape_package_name, NpmInfoClient
from versioning.semver import next_patch

logger = logging.getLogger(__name__)


def publish_registry(
    settings: PublisherSettings,
    packages: Sequence[PackageSummary],
    info_client: NpmInfoClient,
    cached_client: CachedNpmInfoClient,
    not_needed: Sequence[str] = (),
    dry: bool = False,
    now: Optional[datetime] = None,
    workflow_factory: Callable[..., List[ChannelWorkflow]] = build_channel_workflows,
) -> List[ChannelResult]:
    """Run one publish cycle across all channels.

    Errors raised before any channel starts (bad remote state, missing cache
    entries) propagate; channel errors are returned in the results.
    """
    logger.info("=== Publishing %s ===", settings.artifact_name)

    remote = process_remote_info(info_client.fetch_npm_info(escape_package_name(settings.artifact_name)))
    registry = build_registry(packages, cached_client.get_npm_info_from_cache)
    decision: PublishDecision = decide(
        remote,
        registry.content_hash(),
        now or datetime.now(timezone.utc),
        settings.min_days_between_publishes,
    )
    if is_debug_enabled(logger):
        logger.debug(
            "Decision made",
            extra=extra_context(
                event="decision",
                component="cli",
                published=remote.published_version.version_string,
                highest=remote.highest_version.version_string,
                outcome=type(decision).__name__,
            )
        )

    workflows = workflow_factory(
        settings,
        registry,
        next_patch(remote.published_version),
        not_needed=not_needed,
        dry=dry,
        delay=time.sleep,
    )
    return PublishOrchestrator(workflows).run(decision)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL)
    if args.LOG_FILE:
        add_file_handler(args.LOG_FILE)
        logger.info("Logging to file: %s", args.LOG_FILE)

    try:
        settings = load_settings(args.CONFIG)
        packages = load_packages(settings.packages_file)
        cached_client = CachedNpmInfoClient.load(settings.npm_info_cache_file)
        not_needed = load_not_needed(settings.not_needed_file)
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        logger.error("Could not load inputs: %s, aborting", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    if args.DRY:
        logger.info("Dry run: publish, tag and cool-down are skipped.")

    try:
        results = publish_registry(
            settings,
            packages,
            NpmInfoClient(settings.npm_registry_url),
            cached_client,
            not_needed=not_needed,
            dry=args.DRY,
        )
    except PublishError as e:
        logger.error("%s: %s", type(e).__name__, e)
        sys.exit(e.exit_code)

    failed = [r for r in results if not r.ok]
    if any(r.channel == Channels.NPM for r in failed):
        sys.exit(ExitCodes.CHANNEL_FAILED.value)
    if failed:
        logger.warning("Mirror channel failed; the primary channel succeeded.")
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
