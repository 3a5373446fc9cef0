# src/proofer/services/export_service.py
import logging
from pathlib import Path
from typing import Sequence, Union

import pandas as pd

from ..errors import ProoferError
from ..model import Issue

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["path", "line_number", "description", "status", "check_name"]


class ExportService:
    """
    Writes the failures of a run to a CSV or JSON file through a pandas DataFrame.
    The format follows the file extension.
    """

    @staticmethod
    def to_dataframe(failures: Sequence[Issue]) -> pd.DataFrame:
        rows = [issue.model_dump(include=set(EXPORT_COLUMNS)) for issue in failures]
        df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
        # Nullable integers keep missing line numbers empty instead of NaN floats
        df["line_number"] = df["line_number"].astype("Int64")
        return df

    def export(self, failures: Sequence[Issue], output_file: Union[str, Path]) -> Path:
        output_path = Path(output_file)
        suffix = output_path.suffix.lower()
        if suffix not in (".csv", ".json"):
            raise ProoferError(f"Unsupported export format '{suffix}' (use .csv or .json)")

        df = self.to_dataframe(failures)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        if suffix == ".csv":
            df.to_csv(output_path, index=False)
        else:
            df.to_json(output_path, orient="records", indent=2)

        logger.info("Exported %d failures to %s", len(df), output_path)
        return output_path
