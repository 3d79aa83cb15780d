import json
import sys
import numpy as np
import pandas as pd
from pathlib import Path
from typing import Iterable, Optional


class NumpyEncoder(json.JSONEncoder):
    """Handles serialization of NumPy types to JSON."""
    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, (np.ndarray,)):
            return obj.tolist()
        return json.JSONEncoder.default(self, obj)


def save_dataframe(df: pd.DataFrame, path: Path, *, excel_copy: bool = False, index: bool = False) -> Path:
    """
    Save a DataFrame to Parquet for fast I/O with an optional Excel copy for human readability.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_parquet(path, index=index)

    if excel_copy:
        excel_path = path.with_suffix(".xlsx")
        df.to_excel(excel_path, index=index)

    return path


def save_json(payload: dict, path: Path) -> Path:
    """Write a dictionary as indented JSON, converting NumPy scalars on the way."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(payload, f, indent=2, cls=NumpyEncoder)
    return path


def write_predictions(labels: Iterable[int], path: Optional[Path] = None, stream=None) -> None:
    """
    Emit predicted labels.

    With a path, one label per line is written to that file. Otherwise all labels
    go to ``stream`` on a single space-separated line.
    """
    labels = [int(label) for label in labels]
    if path is not None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            for label in labels:
                f.write(f"{label}\n")
        return

    stream = stream if stream is not None else sys.stdout
    stream.write(" ".join(str(label) for label in labels) + "\n")
    stream.flush()
