"""Configuration sections, per-command runtime state, and State.

Configuration comes from YAML, the environment and the command line
(see yaml_settings). String and path values may contain templates that
are resolved once everything is loaded:

    {config.run_name}          another configuration value
    {os.getcwd}, {Path.home}   called with no arguments
    {platformdirs.user_log_dir} called with the application name

Any other ``{placeholder}`` (``{commit}``, ``{unit_args}``, ...) is a
runtime placeholder and is left for the command that fills it in.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from deltamerge.core.base import BaseConfig, BaseState
from deltamerge.core.log import Logger
from deltamerge.core.yaml_settings import YamlWithIncludesSettingsSource
from deltamerge.reconcile.classify import WhitespaceRule
from deltamerge.reconcile.engine import ConflictStyle, MergeOptions

APP_NAME = "deltamerge"

_TEMPLATE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)+)\}")
_MODULES = {"os": os, "Path": Path, "platformdirs": platformdirs}
_NO_ARG_CALLABLES = (os.getcwd, Path.cwd, Path.home)


def resolve_templates(value: str, root: Any) -> str:
    """Resolve dotted templates in a string.

    Args:
        value: Text possibly containing ``{a.b}`` templates
        root: Object that ``{config.*}`` and ``{runtime.*}`` start from

    Returns:
        The text with every resolvable template replaced
    """

    def lookup(match: re.Match) -> str:
        head, *path = match.group(1).split(".")
        if head in _MODULES:
            obj = _MODULES[head]
        elif head in ("config", "runtime"):
            obj = getattr(root, head, None)
        else:
            return match.group(0)

        try:
            for name in path:
                obj = getattr(obj, name)
        except AttributeError:
            return match.group(0)

        if callable(obj):
            if obj in _NO_ARG_CALLABLES:
                obj = obj()
            elif head == "platformdirs":
                obj = obj(APP_NAME, appauthor=False)
            else:
                return match.group(0)
        return str(obj)

    return _TEMPLATE.sub(lookup, value)


def _resolve_tree(node: Any, root: Any) -> Any:
    """Resolve templates in place throughout models, dicts and lists.

    Returns the replacement for ``node`` (itself unless it is a str or
    Path whose text changed).
    """
    if isinstance(node, str):
        return resolve_templates(node, root)
    if isinstance(node, Path):
        text = str(node)
        resolved = resolve_templates(text, root)
        return node if resolved == text else Path(resolved)

    if isinstance(node, BaseModel):
        items = [(name, getattr(node, name)) for name in type(node).model_fields]
        for name, child in items:
            replacement = _resolve_tree(child, root)
            if replacement is not child and replacement != child:
                setattr(node, name, replacement)
    elif isinstance(node, dict):
        for key, child in node.items():
            node[key] = _resolve_tree(child, root)
    elif isinstance(node, list):
        node[:] = [_resolve_tree(child, root) for child in node]
    return node


# Configuration sections


class SourceConfig(BaseConfig):
    """Where the delta comes from."""

    repo: Path = Field(
        default=Path("."),
        description="Path to the git working copy holding the change sets",
    )
    unit_glob: str = Field(
        default="force-app/main/default/classes/*.cls",
        description="Repository paths that count as mergeable units",
    )
    companion_suffix: str | None = Field(
        default="-meta.xml",
        description=(
            "Suffix of a unit's sidecar file, reconciled alongside it "
            "(e.g. Foo.cls -> Foo.cls-meta.xml). Empty to disable"
        ),
    )


class TargetConfig(BaseConfig):
    """How the deployment target lays out and names units."""

    layout: str = Field(
        default="classes/{name}",
        description=(
            "Path of a retrieved unit inside the retrieve output "
            "directory. Placeholders: {name}, {stem}"
        ),
    )
    unit_arg: str = Field(
        default="-m ApexClass:{stem}",
        description="Per-unit argument for retrieve/publish commands",
    )
    copy_to_project: bool = Field(
        default=True,
        description=(
            "Copy merged files into the repository before publishing, "
            "so the publish command deploys them from the project"
        ),
    )
    timeout: int = Field(
        default=600,
        description="Timeout for target commands in seconds",
    )


class MergeConfig(BaseConfig):
    """Three-way merge and classification settings."""

    conflict_style: ConflictStyle = Field(
        default=ConflictStyle.MERGE,
        description="Conflict block layout: 'merge' or 'diff3'",
    )
    marker_size: int = Field(
        default=7, ge=1, description="Width of conflict markers"
    )
    target_label: str = Field(default="target")
    delta_label: str = Field(default="delta")
    base_label: str = Field(default="before")
    whitespace: WhitespaceRule = Field(
        default=WhitespaceRule.IGNORE_ALL,
        description=(
            "Whitespace rule for detecting no-real-change merges: "
            "'ignore-all' (diff -w) or 'collapse'"
        ),
    )

    def options(self) -> MergeOptions:
        return MergeOptions(
            target_label=self.target_label,
            delta_label=self.delta_label,
            base_label=self.base_label,
            marker_size=self.marker_size,
            style=self.conflict_style,
        )


class WorkdirConfig(BaseConfig):
    """Per-change working directories."""

    root: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()),
        description="Directory that holds one working directory per change",
    )
    prefix: str = Field(
        default="pr-merge-",
        description="Working directory name prefix, followed by the change",
    )


class Config(BaseConfig):
    """Application configuration loaded from YAML/env/CLI."""

    logger: Logger = Field(
        default=None,
        description="Logger configuration and runtime instance"
    )
    run_name: str = Field(
        default="deltamerge",
        description="Name used for log directories and the service name",
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / "deltamerge"
        ),
        description=(
            "Root directory for all log files "
            "(supports {platformdirs.*} templates)"
        ),
    )
    source: SourceConfig = Field(default_factory=SourceConfig)
    target: TargetConfig = Field(default_factory=TargetConfig)
    merge: MergeConfig = Field(default_factory=MergeConfig)
    workdir: WorkdirConfig = Field(default_factory=WorkdirConfig)
    commands: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description=(
            "Command templates by category (git, target). Runtime "
            "placeholders like {commit} are filled in at execution"
        ),
    )

    @model_validator(mode='after')
    def _setup_logger(self) -> 'Config':
        """Initialize the global logger from the loaded config."""
        from deltamerge.core.log import setup_logger

        if self.logger is None:
            self.logger = Logger()

        self.logger = setup_logger(
            log_root=self.log_root,
            run_name=self.run_name,
            console=self.logger.console,
            file=self.logger.file,
            otlp=self.logger.otlp,
            level=self.logger.level,
            send_to_logfire=self.logger.send_to_logfire,
            token=self.logger.token,
        )
        return self

    def command(self, group: str, name: str) -> str:
        """Look up a command template.

        Raises:
            KeyError: If the template is not configured
        """
        try:
            return self.commands[group][name]
        except KeyError:
            raise KeyError(
                f"Command template '{group}.{name}' is not configured"
            ) from None



# Runtime state, mutated while a command runs


class ReconcileState(BaseState):
    """Merge workflow runtime state."""

    change: str | None = Field(default=None)
    target: str | None = Field(default=None)
    mode: str = Field(default="preview")
    commit: str | None = Field(
        default=None, description="Commit that merged the change"
    )
    paths: list[str] = Field(
        default_factory=list,
        description="Repository paths of the units the delta touches",
    )
    repo_paths: dict[str, str] = Field(
        default_factory=dict,
        description="Repository path of every unit and companion by name",
    )
    primaries: dict[str, str] = Field(
        default_factory=dict,
        description="Primary unit name of every unit and companion by name",
    )
    units: list[Any] = Field(default_factory=list)
    result: Any = Field(default=None, description="ReconciliationResult")
    decision: Any = Field(default=None, description="PublishDecision")
    source: Any = Field(
        default=None, description="Delta source collaborator"
    )
    target_client: Any = Field(
        default=None, description="Deployment target collaborator"
    )
    workdir: Any = Field(default=None, description="WorkDir of this run")
    status: str = Field(
        default="pending",
        description="pending, running, complete, failed",
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)


class CleanState(BaseState):
    """Clean workflow runtime state."""

    removed: list[Path] = Field(default_factory=list)


class Runtime(BaseModel):
    """All runtime state, grouped by command."""

    reconcile: ReconcileState = Field(default_factory=ReconcileState)
    clean: CleanState = Field(default_factory=CleanState)



# Everything a workflow node sees


class State(BaseSettings):
    """Complete application state: configuration plus runtime.

    This is the object every workflow node receives.
    """

    config: Config = Field(
        default_factory=Config,
        description="Application configuration (from YAML/env/CLI)",
    )
    runtime: Runtime = Field(
        default_factory=Runtime,
        description="Runtime state (mutates during workflow execution)",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to include and merge. "
            "Use --include on CLI or include: in YAML files."
        ),
    )

    model_config = SettingsConfigDict(
        yaml_file="deltamerge.yaml",
        env_file=".env",
        env_prefix="DELTAMERGE_",
        env_nested_delimiter="__",
        cli_parse_args=True,
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore'
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Priority: init args, YAML, .env, environment, secrets."""
        return (
            init_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )


    @model_validator(mode="after")
    def substitute_templates(self) -> State:
        """Resolve templates in configuration values."""
        _resolve_tree(self.config, self)
        return self


__all__ = ["State", "Config", "BaseConfig", "BaseState", "resolve_templates"]
