"""Data models for exp-release.

These Pydantic models represent the core data structures used throughout
the release workflow.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import IncompleteRunError, WorkflowStateError
from .shell import Shell


class PackageDescriptor(BaseModel):
    """In-memory snapshot of one package.json.

    Snapshots are read at the start of a phase and discarded after a write;
    the file on disk is always the source of truth.

    Attributes:
        path: Package directory containing package.json.
        name: Package name, unique within the working set.
        version: Semantic version string.
        dependencies: Runtime dependencies, or None when the file has none.
        peer_dependencies: Peer dependencies, or None when absent.
        dev_dependencies: Dev dependencies, never rewritten.
        private: The "private" flag, or None when absent.
        document: The full parsed document, used to preserve every other
                  field and the original key order on write.
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    name: str
    version: str
    dependencies: dict[str, str] | None = None
    peer_dependencies: dict[str, str] | None = None
    dev_dependencies: dict[str, str] | None = None
    private: bool | None = None
    document: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_private(self) -> bool:
        return bool(self.private)


class VersionPlan(BaseModel):
    """Immutable mapping of package name to the version it will receive next."""

    model_config = ConfigDict(frozen=True)

    versions: dict[str, str] = Field(default_factory=dict)

    def __getitem__(self, name: str) -> str:
        return self.versions[name]

    def __contains__(self, name: object) -> bool:
        return name in self.versions

    def names(self) -> Iterator[str]:
        return iter(self.versions)

    def __len__(self) -> int:
        return len(self.versions)

    def get(self, name: str) -> str | None:
        return self.versions.get(name)

    def items(self) -> list[tuple[str, str]]:
        return list(self.versions.items())

    def only(self, name: str) -> VersionPlan:
        """Return a plan holding just one package's entry."""
        return VersionPlan(versions={name: self.versions[name]})


class ReleaseChannel(BaseModel):
    """A pre-release distribution track such as "exp".

    Attributes:
        name: Channel identifier, used as the prerelease tag in versions.
        dist_tag: Registry distribution tag packages are published under.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    dist_tag: str

    @property
    def suffix(self) -> str:
        """Marker appended to development package names (e.g. "-exp")."""
        return f"-{self.name}"


class RewriteOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    remove_channel_suffix_from_name: bool = False
    update_versions: bool = False
    make_public: bool = False


# Registry-facing descriptors: strip suffixes, set planned versions, publicize.
PUBLISH_REWRITE = RewriteOptions(
    remove_channel_suffix_from_name=True, update_versions=True, make_public=True
)
# Restored development descriptors: only carry the umbrella version bump.
VERSION_ONLY_REWRITE = RewriteOptions(update_versions=True)


class BuildStage(BaseModel):
    """One invocation of the build runner.

    Attributes:
        scopes: Package-name scopes passed as --scope arguments.
        target: Build target (script) name, e.g. "build:release".
    """

    model_config = ConfigDict(extra="forbid")

    scopes: list[str]
    target: str


def _default_stages() -> list[BuildStage]:
    return [
        # app, functions and remote-config are not real dependencies, but the
        # -exp variants are aliased to them during compilation.
        BuildStage(
            scopes=[
                "@firebase/app",
                "@firebase/functions",
                "@firebase/remote-config",
                "@firebase/util",
                "@firebase/component",
                "@firebase/logger",
                "@firebase/webchannel-wrapper",
            ],
            target="build",
        ),
        BuildStage(scopes=["@firebase/*-exp", "@firebase/*-compat"], target="build:release"),
        BuildStage(scopes=["@firebase/firestore"], target="prebuild"),
        BuildStage(scopes=["@firebase/firestore"], target="build:exp:release"),
        BuildStage(scopes=["firebase-exp"], target="build:release"),
    ]


class BuildConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    runner: list[str] = Field(default_factory=lambda: ["yarn", "lerna", "run"])
    # Stale output of non-channel siblings; channel consumers would resolve
    # against it instead of the channel artifact.
    stale_outputs: list[str] = Field(
        default_factory=lambda: ["packages/installations/dist"]
    )
    stages: list[BuildStage] = Field(default_factory=_default_stages)


class PublishConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    command: list[str] = Field(default_factory=lambda: ["npm", "publish"])


class ReleaseConfig(BaseModel):
    """Settings from the [release] table of release.toml."""

    model_config = ConfigDict(extra="forbid")

    umbrella_package: str = "firebase-exp"
    channel: str = "exp"
    dist_tag: str | None = None
    access: str = "public"
    workspaces: list[str] = Field(default_factory=lambda: ["packages-exp/*"])
    extra_packages: list[str] = Field(default_factory=lambda: ["packages/firestore"])
    lockfile: str = "yarn.lock"
    remote: str = "origin"
    commit_message: str = "Publish firebase@exp {version}"
    build: BuildConfig = Field(default_factory=BuildConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)

    @field_validator("workspaces", "extra_packages")
    @classmethod
    def _inside_root(cls, value: list[str]) -> list[str]:
        for entry in value:
            p = Path(entry)
            if p.is_absolute() or ".." in p.parts:
                raise ValueError(f"{entry!r} must be a path inside the project root")
        return value

    def release_channel(self) -> ReleaseChannel:
        return ReleaseChannel(name=self.channel, dist_tag=self.dist_tag or self.channel)


class PublishOutcome(BaseModel):
    """Result of publishing one package."""

    name: str
    version: str | None = None
    path: Path
    ok: bool
    error: str | None = None


class PublishReport(BaseModel):
    """Per-package publish outcomes, in the order packages were given."""

    outcomes: list[PublishOutcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> list[str]:
        return [o.name for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[str]:
        return [o.name for o in self.outcomes if not o.ok]

    @property
    def ok(self) -> bool:
        return not self.failed


class WorkflowState(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    BUILDING = "building"
    VERSION_PLANNED = "version_planned"
    AWAITING_PUBLISH_CONFIRMATION = "awaiting_publish_confirmation"
    ABORTED = "aborted"
    PUBLISHING = "publishing"
    AWAITING_RESET_CONFIRMATION = "awaiting_reset_confirmation"
    EXITED = "exited"
    RESETTING = "resetting"
    AWAITING_PUSH_CONFIRMATION = "awaiting_push_confirmation"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = frozenset(
    {WorkflowState.ABORTED, WorkflowState.EXITED, WorkflowState.DONE, WorkflowState.FAILED}
)

TRANSITIONS: dict[WorkflowState, frozenset[WorkflowState]] = {
    WorkflowState.IDLE: frozenset({WorkflowState.PREPARING}),
    WorkflowState.PREPARING: frozenset({WorkflowState.BUILDING}),
    WorkflowState.BUILDING: frozenset({WorkflowState.VERSION_PLANNED}),
    WorkflowState.VERSION_PLANNED: frozenset(
        {WorkflowState.AWAITING_PUBLISH_CONFIRMATION}
    ),
    WorkflowState.AWAITING_PUBLISH_CONFIRMATION: frozenset(
        {WorkflowState.ABORTED, WorkflowState.PUBLISHING}
    ),
    WorkflowState.PUBLISHING: frozenset({WorkflowState.AWAITING_RESET_CONFIRMATION}),
    WorkflowState.AWAITING_RESET_CONFIRMATION: frozenset(
        {WorkflowState.EXITED, WorkflowState.RESETTING}
    ),
    # Dry runs skip the push gate and finish straight after resetting.
    WorkflowState.RESETTING: frozenset(
        {WorkflowState.AWAITING_PUSH_CONFIRMATION, WorkflowState.DONE}
    ),
    WorkflowState.AWAITING_PUSH_CONFIRMATION: frozenset(
        {WorkflowState.DONE, WorkflowState.COMMITTING}
    ),
    WorkflowState.COMMITTING: frozenset({WorkflowState.DONE}),
}


class WorkflowRun(BaseModel):
    """Everything one release invocation needs, passed to every component.

    Attributes:
        root: Project root; all relative config paths resolve against it.
        config: Validated release configuration.
        shell: Process runner bound to root.
        dry_run: Publish with --dry-run and never commit or push.
        paths: Working set of package directories, in discovery order.
        descriptors: Snapshots read while preparing.
        build_id: Short revision hash used in prerelease versions.
        plan: Version plan, set once and never replaced.
        publish_report: Per-package publish outcomes.
        push_error: Message of a non-fatal commit/push failure.
        state: Current workflow state.
        history: Every state entered, in order.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    root: Path
    config: ReleaseConfig = Field(default_factory=ReleaseConfig)
    shell: Shell
    dry_run: bool = False
    paths: list[Path] = Field(default_factory=list)
    descriptors: list[PackageDescriptor] = Field(default_factory=list)
    build_id: str | None = None
    plan: VersionPlan | None = None
    publish_report: PublishReport | None = None
    push_error: str | None = None
    state: WorkflowState = WorkflowState.IDLE
    history: list[WorkflowState] = Field(default_factory=lambda: [WorkflowState.IDLE])

    @property
    def channel(self) -> ReleaseChannel:
        return self.config.release_channel()

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, new: WorkflowState) -> None:
        """Move to a new state, rejecting transitions the workflow does not allow.

        Any non-terminal state may move to FAILED.
        """
        if self.is_terminal:
            raise WorkflowStateError(self.state.value, new.value)
        if new is not WorkflowState.FAILED and new not in TRANSITIONS.get(
            self.state, frozenset()
        ):
            raise WorkflowStateError(self.state.value, new.value)
        self.state = new
        self.history.append(new)

    def set_plan(self, plan: VersionPlan) -> None:
        if self.plan is not None:
            raise ValueError("Version plan is already set for this run")
        self.plan = plan

    def planned(self) -> VersionPlan:
        """Return the version plan, which every state after planning relies on."""
        if self.plan is None:
            raise IncompleteRunError("version plan", self.state.value)
        return self.plan

    def revision(self) -> str:
        if self.build_id is None:
            raise IncompleteRunError("build identifier", self.state.value)
        return self.build_id
