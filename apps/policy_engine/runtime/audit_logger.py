from __future__ import annotations

import json
import os
from typing import Any, Dict


class AuditLogger:
    """
    Append-only JSONL log of scaling decisions, one JSON object per line.
    """

    def __init__(self, log_path: str):
        self.log_path = log_path
        directory = os.path.dirname(log_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def write_event(self, event: Dict[str, Any]) -> None:
        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=False, default=str) + "\n")
