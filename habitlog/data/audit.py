"""JSON-lines audit trail for store access."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def write_audit_entry(audit_path: Path, action: str, **fields: Any) -> None:
    """Append one timestamped action line to the audit log."""
    entry = {"timestamp": datetime.now(UTC).isoformat(), "action": action, **fields}
    audit_path.parent.mkdir(parents=True, exist_ok=True)
    with audit_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry, default=str) + "\n")


def read_audit_entries(audit_path: Path, action: str | None = None) -> list[dict[str, Any]]:
    """Return logged entries oldest first, optionally only those for one action."""
    if not audit_path.exists():
        return []
    entries: list[dict[str, Any]] = []
    with audit_path.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Skipping corrupt audit line in %s", audit_path)
                continue
            if action is None or entry.get("action") == action:
                entries.append(entry)
    return entries
