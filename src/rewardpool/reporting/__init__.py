"""Reporting: tabular export and charts for ledger runs."""

from .charts import create_accumulator_chart, create_pending_chart
from .export import (
    events_to_frame,
    export_csv,
    export_json,
    result_to_dict,
    snapshots_to_frame,
)

__all__ = [
    "create_accumulator_chart",
    "create_pending_chart",
    "events_to_frame",
    "export_csv",
    "export_json",
    "result_to_dict",
    "snapshots_to_frame",
]
