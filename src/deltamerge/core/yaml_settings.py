"""YAML settings source: layered files, ``include:`` and ``--include``."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

from deltamerge.core.log import logger

PROJECT_CONFIG = "deltamerge.yaml"
PACKAGE_DEFAULTS = Path(__file__).parent.parent / "defaults" / "default.yaml"


def cli_includes(argv: list[str] | None = None) -> list[str]:
    """Collect ``--include FILE`` values from the command line."""
    argv = sys.argv if argv is None else argv
    return [
        argv[i + 1]
        for i in range(1, len(argv) - 1)
        if argv[i] == "--include"
    ]


def merge_layers(base: dict, override: dict) -> dict:
    """Merge two mappings recursively; ``override`` wins on conflicts."""
    merged = dict(base)
    for key, value in override.items():
        below = merged.get(key)
        if isinstance(below, dict) and isinstance(value, dict):
            merged[key] = merge_layers(below, value)
        else:
            merged[key] = value
    return merged


def load_with_includes(path: Path, _chain: tuple[Path, ...] = ()) -> dict:
    """Load one YAML file after the files it includes.

    ``include:`` takes a path or a list of paths, relative to the
    including file. Included data is merged first, so the including
    file has the last word.

    Raises:
        ValueError: If a file ends up including itself
    """
    path = path.resolve()
    if path in _chain:
        raise ValueError(f"Circular include: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    includes = data.pop("include", None) or []
    if isinstance(includes, str):
        includes = [includes]

    merged: dict = {}
    for include in includes:
        target = Path(include).expanduser()
        if not target.is_absolute():
            target = path.parent / target
        with logger.span(
            "Including {include_file}",
            include_file=str(target),
            included_from=str(path),
        ):
            merged = merge_layers(
                merged, load_with_includes(target, (*_chain, path))
            )
    return merge_layers(merged, data)


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """Layered YAML configuration.

    Files are deep-merged, later layers winning: package defaults, the
    user config directory, ./deltamerge.yaml (or the file passed in),
    then every ``--include`` file in command-line order.
    """

    def __init__(self, settings_cls: type[BaseSettings], yaml_file=None):
        project = yaml_file or settings_cls.model_config.get("yaml_file")
        if isinstance(project, (str, os.PathLike)):
            project = [project]
        files = [*(project or []), *cli_includes()]
        super().__init__(settings_cls, files or None)

    @staticmethod
    def layers(files: Iterable) -> list[Path]:
        """Candidate files in merge order, before existence checks."""
        return [
            PACKAGE_DEFAULTS,
            Path(user_config_dir("deltamerge", appauthor=False))
            / PROJECT_CONFIG,
            *(Path(f).expanduser() for f in files),
        ]

    def _read_files(self, files, deep_merge: bool = True):  # noqa: ARG002
        # Layers always merge deeply; the flag only mirrors the base class
        if isinstance(files, (str, os.PathLike)):
            files = [files]

        data: dict = {}
        seen: set[Path] = set()
        for path in self.layers(files or []):
            if not path.is_file():
                logger.debug("No configuration at {file}", file=str(path))
                continue
            if path.resolve() in seen:
                continue
            seen.add(path.resolve())
            with logger.span("Loading configuration {file}", file=str(path)):
                data = merge_layers(data, load_with_includes(path))
        return data
