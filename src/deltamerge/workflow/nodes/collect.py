"""CollectSnapshots node - gather before/after/target for every unit."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from deltamerge.core.config import State
from deltamerge.core.log import logger
from deltamerge.reconcile.normalize import normalize_line_endings
from deltamerge.reconcile.snapshot import Snapshot, Unit
from deltamerge.workflow.nodes.reconcile import Reconcile


def _snapshot(text: str | None) -> Snapshot:
    if text is None:
        return Snapshot.absent()
    return Snapshot.from_text(normalize_line_endings(text))


@dataclass
class CollectSnapshots(BaseNode[State]):
    """Extract delta snapshots from git and target snapshots from the target."""

    async def run(self, ctx: GraphRunContext[State]) -> Reconcile:
        run = ctx.state.runtime.reconcile
        source = run.source
        workdir = run.workdir

        delta: dict[str, tuple[str | None, str | None]] = {}
        companions: dict[str, str] = {}

        def extract(name, path, primary, before, after) -> None:
            delta[name] = (before, after)
            run.repo_paths[name] = path
            run.primaries[name] = primary
            if before is not None:
                workdir.write("before", name, before)
            if after is not None:
                workdir.write("after", name, after)

        with logger.span("Extracting delta snapshots", commit=run.commit):
            for path in run.paths:
                name = source.unit_name(path)
                extract(name, path, name, *source.snapshots(run.commit, path))

                companion = source.companion_path(path)
                if not companion:
                    continue
                companion_name = source.unit_name(companion)
                before, after = source.snapshots(run.commit, companion)
                # Sidecars only travel with the unit when the delta has them
                if before is None and after is None:
                    continue
                extract(companion_name, companion, name, before, after)
                companions[name] = companion_name

        primaries = [source.unit_name(path) for path in run.paths]
        retrieved = workdir.role_dir("target")
        with logger.span("Retrieving from {target}", target=run.target):
            run.target_client.retrieve(primaries, retrieved)

        def build(name: str, companion: Unit | None = None) -> Unit:
            before, after = delta[name]
            return Unit(
                name=name,
                before=_snapshot(before),
                after=_snapshot(after),
                target=_snapshot(run.target_client.read(name, retrieved)),
                companion=companion,
            )

        run.units = [
            build(
                name,
                build(companions[name]) if name in companions else None,
            )
            for name in primaries
        ]
        logger.info("Collected {count} unit(s)", count=len(run.units))
        return Reconcile()
