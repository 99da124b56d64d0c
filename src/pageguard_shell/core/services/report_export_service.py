# src/pageguard_shell/core/services/report_export_service.py
import logging
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd

from pageguard.model import GenerationResult

logger = logging.getLogger(__name__)

ISSUE_COLUMNS = ["filename", "state", "score", "source", "code", "severity", "category", "message", "line"]


class ReportExportService:
    """
    Flattens a GenerationResult into one row per finding, so a whole run can
    be filtered and sorted in a spreadsheet.

    Validator findings are taken from each page's final validation; the
    completeness findings follow with source 'completeness'.
    """

    @staticmethod
    def issues_dataframe(result: GenerationResult) -> pd.DataFrame:
        rows: List[Dict[str, Any]] = []

        for filename, outcome in result.pages.items():
            validation = outcome.final_validation
            if validation is None:
                continue
            for issue in validation.issues:
                rows.append({
                    "filename": filename,
                    "state": outcome.state.value,
                    "score": validation.score,
                    "source": "validator",
                    "code": issue.code,
                    "severity": issue.severity,
                    "category": issue.category,
                    "message": issue.message,
                    "line": issue.line,
                })

        for page in result.completeness.pages:
            outcome = result.pages.get(page.filename)
            for issue in page.issues:
                rows.append({
                    "filename": page.filename,
                    "state": outcome.state.value if outcome else None,
                    "score": outcome.final_score if outcome else None,
                    "source": "completeness",
                    "code": issue.code,
                    "severity": issue.severity,
                    "category": "completeness",
                    "message": issue.message,
                    "line": None,
                })

        df = pd.DataFrame(rows, columns=ISSUE_COLUMNS)
        # Nullable integers keep 'line' from turning into floats when some rows have none.
        df["line"] = df["line"].astype("Int64")
        return df

    @staticmethod
    def pages_dataframe(result: GenerationResult) -> pd.DataFrame:
        rows = []
        for filename, outcome in result.pages.items():
            rows.append({
                "filename": filename,
                "initial_score": outcome.initial_validation.score if outcome.initial_validation else None,
                "final_score": outcome.final_score,
                "wrapped": outcome.wrapped,
                "applied_fixes": ", ".join(outcome.applied_fixes),
                "path": " -> ".join(s.value for s in outcome.history),
            })
        return pd.DataFrame(rows, columns=["filename", "initial_score", "final_score", "wrapped", "applied_fixes", "path"])

    @classmethod
    def export_csv(cls, result: GenerationResult, output_file: Path) -> int:
        """Writes the issue table to CSV. Returns the number of rows written."""
        df = cls.issues_dataframe(result)
        output_file = Path(output_file).with_suffix(".csv")
        output_file.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output_file, index=False)
        logger.info(f"Exported {len(df)} issue row(s) to {output_file}")
        return len(df)
