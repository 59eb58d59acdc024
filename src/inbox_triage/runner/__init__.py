"""Drivers that feed messages into the rule engine."""

from inbox_triage.runner.batch import BatchRuleRunner
from inbox_triage.runner.models import ActionCounts, BatchRunResult
from inbox_triage.runner.watcher import NewMailWatcher

__all__ = ["ActionCounts", "BatchRuleRunner", "BatchRunResult", "NewMailWatcher"]
