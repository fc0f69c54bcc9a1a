# src/lvgrowth/fit/export.py
from __future__ import annotations
import io
import zipfile
from pathlib import Path
from typing import Any, Dict

import pandas as pd

OUTPUT_FILES = {
    "fits": "lvFit.csv",
    "params": "lvParams.csv",
    "summary": "lvSummary.csv",
    "failures": "lvFailures.csv",
}


def export_results(
    batch: Dict[str, Any],
    out_dir: Path,
    zip_name: str = "lv_outputs.zip",
    cleanup_csv: bool = False,
) -> Dict[str, Any]:
    """
    Write the batch tables and a ZIP containing them.
    Files written:
      - lvFit.csv       fitted trajectories
      - lvParams.csv    estimate / std_error per group and parameter
      - lvSummary.csv   sigma, log-likelihood, AIC, convergence per group
      - lvFailures.csv  groups that could not be fitted
      - <zip_name>
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    csv_paths = {}
    for key, fname in OUTPUT_FILES.items():
        table = batch.get(key)
        if table is None:
            table = pd.DataFrame()
        path = out_dir / fname
        table.to_csv(path, index=False)
        csv_paths[key] = path

    bio = io.BytesIO()
    with zipfile.ZipFile(bio, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for p in csv_paths.values():
            zf.write(p, arcname=p.name)
    zip_bytes = bio.getvalue()

    zip_path = out_dir / zip_name
    zip_path.write_bytes(zip_bytes)

    if cleanup_csv:
        for p in csv_paths.values():
            p.unlink(missing_ok=True)

    return {"zip_bytes": zip_bytes, "zip_path": zip_path, "csv_paths": csv_paths}
