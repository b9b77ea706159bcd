# src/allocprep/dataloader/postload_handler.py
from __future__ import annotations

import json
import logging
from pathlib import Path

from allocprep.dataloader.types import LoadResult
from allocprep.schemas.models import Client, Task, Worker

logger = logging.getLogger(__name__)


class LoadResultHandler:
    """
    @brief
    Handles a LoadResult after table parsing and writes a diagnostic report if needed.

    @details
    Rows are always passed downstream: coercion issues are not fatal because
    the Validator reports on whatever reached the records. When issues exist,
    they are written to 'load_issues_{entity}.json' inside output_dir so the
    user can see which cells were dropped.
    """

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = output_dir

    def handle(self, result: LoadResult) -> list[Client] | list[Worker] | list[Task]:
        """
        @brief
        Returns shaped rows; writes the issue report for unsuccessful loads.

        @details
        Any I/O failure while writing the report is logged and does not raise.
        """
        # (1) Clean load
        if result.success:
            logger.info("PostLoad: %d %s ready for validation.", result.kept_rows, result.entity)
            return result.rows

        # (2) Issues present: persist them next to the other outputs
        self.output_dir.mkdir(parents=True, exist_ok=True)
        out_path = self.output_dir / f"load_issues_{result.entity}.json"

        try:
            with out_path.open("w", encoding="utf-8") as f:
                json.dump(result.issues, f, ensure_ascii=False, indent=2)
            logger.warning(
                "PostLoad: %d coercion issue(s) in %s; values dropped. See %s",
                len(result.issues),
                result.entity,
                out_path,
            )
        except OSError as e:
            logger.error("PostLoad: failed to write issue report: %s", e)

        return result.rows
