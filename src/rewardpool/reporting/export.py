"""Export functionality for CSV and JSON."""

import json
from typing import Any, Dict, List

import pandas as pd

from ..engine.events import LedgerEvent
from ..simulation.runner import SimulationResult


def snapshots_to_frame(result: SimulationResult) -> pd.DataFrame:
    """One row per executed step, columns as recorded by the runner."""
    return pd.DataFrame(result.snapshots)


def events_to_frame(events: List[LedgerEvent]) -> pd.DataFrame:
    """Flatten pool and account events into one frame (missing fields are NaN)."""
    return pd.DataFrame([event.to_dict() for event in events])


def export_csv(result: SimulationResult, filepath: str):
    """Export step snapshots to CSV."""
    df = snapshots_to_frame(result)
    # acc_per_share exceeds int64; keep exact values as text
    if 'acc_per_share' in df:
        df['acc_per_share'] = df['acc_per_share'].astype(str)
    df.to_csv(filepath, index=False)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return value


def result_to_dict(result: SimulationResult) -> Dict[str, Any]:
    """Serializable summary of a scenario run."""
    return {
        'config': result.config.to_dict(),
        'config_hash': result.config.compute_hash(),
        'passed': result.passed,
        'snapshots': result.snapshots,
        'payouts': result.payouts,
        'final_pending': result.final_pending,
        'expectation_failures': result.expectation_failures,
        'errors': result.errors,
        'warnings': [
            {'severity': w.severity, 'category': w.category, 'message': w.message, 'details': w.details}
            for w in result.warnings
        ],
        'events': [_jsonable(event.to_dict()) for event in result.events],
    }


def export_json(result: SimulationResult, filepath: str):
    """Export scenario results to JSON."""
    with open(filepath, 'w') as f:
        json.dump(result_to_dict(result), f, indent=2)
