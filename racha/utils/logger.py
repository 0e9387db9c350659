# racha/utils/logger.py
"""
Interpretation log.

Every interpretation can be appended as a single row to a CSV file. Rows from
real traffic are later labelled by hand and used to tune the keyword packs.

We log:
- original text, timestamp
- scenario / region / formality / dynamics from the cultural context
- splitting method, totals, counts and confidences
"""

import csv
import os
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from racha.config.engine_config import EngineConfig
from racha.schemas.expense import ExpenseInterpretation


def _ensure_log_dir(log_file: str) -> None:
    """
    Make sure the directory holding the log exists.
    """
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)


def _flatten_context(interpretation: ExpenseInterpretation) -> Dict[str, Any]:
    """
    Flatten the cultural context into prefixed columns.

    Example output keys:
    - context_scenario
    - context_region
    - context_confidence
    """
    ctx = interpretation.cultural_context.to_dict()
    ctx.pop("evidence", None)
    return {f"context_{k}": v for k, v in ctx.items()}


def _interpretation_to_row(interpretation: ExpenseInterpretation) -> Dict[str, Any]:
    """
    Convert an ExpenseInterpretation into a flat dict suitable for CSV logging.
    """
    row: Dict[str, Any] = {
        "text": interpretation.original_text,
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "splitting_method": interpretation.splitting_method.value,
        "total_amount": round(interpretation.total_amount, 2),
        "currency": interpretation.currency,
        "num_amounts": len(interpretation.amounts),
        "num_participants": len(interpretation.participants),
        "participant_count": interpretation.participant_count,
        "participants": "|".join(p.name for p in interpretation.participants),
        "regional_terms": "|".join(v.original_term for v in interpretation.regional_variations),
        "confidence": round(interpretation.confidence, 3),
        "processing_time_ms": round(interpretation.processing_time_ms, 3),
    }
    row.update(_flatten_context(interpretation))
    return row


def log_interpretation(interpretation: ExpenseInterpretation, log_file: Optional[str] = None) -> None:
    """
    Append a single interpretation as a row to the CSV log.

    - Creates the log directory if it doesn't exist.
    - Writes header on first write.
    - Appends subsequent rows with the same header.
    - Without log_file, uses RACHA_LOG_FILE (see EngineConfig).
    """
    if log_file is None:
        log_file = EngineConfig.from_env().log_file

    _ensure_log_dir(log_file)

    row = _interpretation_to_row(interpretation)
    file_exists = os.path.isfile(log_file)

    # Rows are always built the same way, so row.keys() keeps columns stable.
    fieldnames = list(row.keys())

    with open(log_file, mode="a", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)

        if not file_exists:
            writer.writeheader()

        writer.writerow(row)
