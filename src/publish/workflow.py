"""Per-channel publish state machine and the multi-channel orchestrator.

One channel moves through::

    BUILT -> PUBLISHED -> COOLING_DOWN -> VALIDATED -> PROMOTED
    BUILT -> REPROMOTED
    BUILT -> SKIPPED

The "latest" tag is only ever moved after validation passes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from analysis.consistency import assert_entries_subset, assert_newer_is_superset_of_older
from analysis.decision import NoOp, PublishDecision, PublishNew, RePromote
from cli_config import PublisherSettings
from common.logging_utils import extra_context, Timer
from constants import Channels, Constants
from errors import PublishError
from publish.manifest import channel_package_name, generate_package_json
from publish.output import OutputSink
from registry.builder import Registry
from registry.npm.client import NpmInstaller, NpmPublishClient
from versioning.semver import Semver

logger = logging.getLogger(__name__)


class WorkflowState(Enum):
    """States of one channel's workflow."""

    BUILT = "built"
    PUBLISHED = "published"
    COOLING_DOWN = "cooling_down"
    VALIDATED = "validated"
    PROMOTED = "promoted"
    SKIPPED = "skipped"
    REPROMOTED = "repromoted"


class PublishClient(Protocol):
    def publish(self, package_dir: str, manifest: Mapping[str, Any], dry: bool) -> None: ...

    def tag(self, package_name: str, version: str, dist_tag: str, dry: bool) -> None: ...


class Installer(Protocol):
    def install(self, package_name: str) -> Dict[str, Any]: ...


class ChannelWorkflow:
    """Builds, publishes, validates and promotes the artifact on one channel."""

    def __init__(
        self,
        channel: Channels,
        settings: PublisherSettings,
        registry: Registry,
        candidate_version: Semver,
        publish_client: PublishClient,
        installer: Installer,
        sink: OutputSink,
        not_needed: Iterable[str] = (),
        dry: bool = False,
        delay: Callable[[float], None] = time.sleep,
    ):
        self.channel = channel
        self.settings = settings
        self.registry = registry
        self.candidate_version = candidate_version
        self.publish_client = publish_client
        self.installer = installer
        self.sink = sink
        self.not_needed = list(not_needed)
        self.dry = dry
        self.delay = delay
        self.package_name = channel_package_name(settings.artifact_name, channel)
        self.states: List[WorkflowState] = []
        self.manifest: Optional[Dict[str, Any]] = None

    def _enter(self, state: WorkflowState) -> None:
        self.states.append(state)
        logger.debug(
            "Workflow transition",
            extra=extra_context(
                event="transition",
                component="workflow",
                channel=self.channel.value,
                state=state.value,
            )
        )

    def build(self) -> None:
        """Write the artifact for this channel. The manifest is fixed from here on."""
        self.manifest = generate_package_json(
            self.package_name,
            self.channel,
            self.candidate_version.version_string,
            self.registry.content_hash(),
            mirror_registry_url=self.settings.mirror_registry_url,
        )
        self.sink.write_artifact(self.registry.to_json(), self.manifest, self.settings.readme)
        self._enter(WorkflowState.BUILT)

    def run(self, decision: PublishDecision) -> List[WorkflowState]:
        """Drive this channel to a terminal state for ``decision``."""
        logger.info("=== Publishing %s to %s ===", self.package_name, self.channel.value)
        self.build()
        if isinstance(decision, RePromote):
            self._repromote(decision.version)
        elif isinstance(decision, PublishNew):
            self._publish(decision.version)
        elif isinstance(decision, NoOp):
            # Nothing to publish; still check the live artifact.
            self.validate()
            self._enter(WorkflowState.SKIPPED)
        else:
            raise TypeError(f"Unknown publish decision: {decision!r}")
        return self.states

    def _publish(self, version: Semver) -> None:
        self.publish_client.publish(self.sink.output_dir, self.manifest, self.dry)
        self._enter(WorkflowState.PUBLISHED)

        seconds = self.settings.cooldown_seconds
        if self.dry:
            logger.info("(dry) Skipping %s second sleep...", seconds)
        else:
            logger.info("Sleeping for %s seconds ...", seconds)
            self.delay(seconds)
        self._enter(WorkflowState.COOLING_DOWN)

        self.validate()
        self._enter(WorkflowState.VALIDATED)

        self.publish_client.tag(self.package_name, version.version_string, Constants.LATEST_TAG, self.dry)
        self._enter(WorkflowState.PROMOTED)

    def _repromote(self, version: Semver) -> None:
        installed = self.installer.install(self.package_name)
        expected = self.sink.read_index()
        assert_entries_subset(installed, expected, self.not_needed)
        self.publish_client.tag(self.package_name, version.version_string, Constants.LATEST_TAG, self.dry)
        self._enter(WorkflowState.REPROMOTED)

    def validate(self) -> None:
        """Check the locally generated registry is not behind the installed ``next``."""
        installed = self.installer.install(self.package_name)
        output = self.sink.path("index.json")
        logger.info("Checking that %s is newer than %s@%s", output, self.package_name, Constants.NEXT_TAG)
        assert_newer_is_superset_of_older(self.sink.read_index(), installed)


@dataclass
class ChannelResult:
    """Outcome of one channel: ok, or failed with the error that stopped it."""

    channel: Channels
    states: List[WorkflowState] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PublishOrchestrator:
    """Runs every channel's workflow; one channel failing does not stop the others."""

    def __init__(self, workflows: Sequence[ChannelWorkflow]):
        self.workflows = list(workflows)

    def run(self, decision: PublishDecision) -> List[ChannelResult]:
        results = []
        for workflow in self.workflows:
            result = ChannelResult(workflow.channel)
            with Timer() as timer:
                try:
                    workflow.run(decision)
                except PublishError as exc:
                    result.error = exc
            result.states = list(workflow.states)
            if result.ok:
                logger.info(
                    "Channel %s finished in state %s",
                    workflow.channel.value,
                    result.states[-1].value,
                    extra=extra_context(event="channel", outcome="success", duration_ms=timer.duration_ms()),
                )
            else:
                logger.error(
                    "publishing to %s failed: %s",
                    workflow.channel.value,
                    result.error,
                    extra=extra_context(event="channel", outcome="failed", duration_ms=timer.duration_ms()),
                )
            results.append(result)
        return results


def build_channel_workflows(
    settings: PublisherSettings,
    registry: Registry,
    candidate_version: Semver,
    not_needed: Iterable[str] = (),
    dry: bool = False,
    delay: Callable[[float], None] = time.sleep,
) -> List[ChannelWorkflow]:
    """Wire the npm (primary) and GitHub (mirror) channels with real clients."""
    not_needed = list(not_needed)
    registry_urls = {
        Channels.NPM: settings.npm_registry_url,
        Channels.GITHUB: settings.mirror_registry_url,
    }
    workflows = []
    for channel in (Channels.NPM, Channels.GITHUB):
        url = registry_urls[channel]
        workflows.append(ChannelWorkflow(
            channel,
            settings,
            registry,
            candidate_version,
            publish_client=NpmPublishClient(url, npm_binary=settings.npm_binary),
            installer=NpmInstaller(
                settings.channel_validate_dir(channel.value),
                url,
                npm_binary=settings.npm_binary,
                install_flags=settings.install_flags,
            ),
            sink=OutputSink(settings.channel_output_dir(channel.value)),
            not_needed=not_needed,
            dry=dry,
            delay=delay,
        ))
    return workflows
