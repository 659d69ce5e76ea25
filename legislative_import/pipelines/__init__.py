"""
Pipelines that move acts from a source portal into a LegislationStore.

- initial_import: priority-list import and manual single-act re-import
- update_check: hash-based change detection for already processed acts
"""

from .common import RunTracker, estimate_run_cost_eur, transform_act
from .initial_import import ImportPipeline
from .update_check import UpdateCheckPipeline

__all__ = [
    "ImportPipeline",
    "UpdateCheckPipeline",
    "RunTracker",
    "estimate_run_cost_eur",
    "transform_act",
]
