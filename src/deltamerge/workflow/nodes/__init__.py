"""Workflow nodes for the reconciliation graph."""

from deltamerge.workflow.nodes.collect import CollectSnapshots
from deltamerge.workflow.nodes.locate import LocateDelta
from deltamerge.workflow.nodes.publish import Publish
from deltamerge.workflow.nodes.reconcile import Reconcile
from deltamerge.workflow.nodes.report import Report

__all__ = [
    "LocateDelta",
    "CollectSnapshots",
    "Reconcile",
    "Report",
    "Publish",
]
