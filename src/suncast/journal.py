"""Append-only JSONL journal of suncast runs plus raw Open-Meteo payload snapshots.

Events go to one file per UTC day (``YYYYMMDD.jsonl``), so a long-running
session that crosses midnight rolls over to the next file automatically.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from .exceptions import JournalError
from .redaction import sanitize_for_logging, sanitize_text


def _json_default(value: Any) -> Any:
    """Fallback serializer for non-JSON native values."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC).isoformat()
        return value.astimezone(UTC).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    # Objects with their own __str__ (pydantic AnyUrl and friends) are accepted;
    # anything else is a schema drift and should fail loudly.
    if type(value).__str__ is not object.__str__:
        return sanitize_text(str(value))
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _safe_name(name: str) -> str:
    return "".join(ch if ch.isalnum() or ch in {"-", "_"} else "_" for ch in name)


class JournalWriter:
    """Writes run events to daily JSONL files and raw payloads to standalone JSON files."""

    def __init__(self, journal_dir: Path, raw_payload_dir: Path, session_id: str) -> None:
        self.journal_dir = journal_dir
        self.raw_payload_dir = raw_payload_dir
        self.session_id = session_id
        try:
            self.journal_dir.mkdir(parents=True, exist_ok=True)
            self.raw_payload_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise JournalError(f"Failed creating journal directories: {exc}") from exc

    @property
    def events_path(self) -> Path:
        return self.path_for(datetime.now(UTC).date())

    def path_for(self, day: date) -> Path:
        return self.journal_dir / f"{day:%Y%m%d}.jsonl"

    def write_event(
        self,
        event_type: str,
        payload: dict[str, Any],
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Append one redacted event record."""
        record = {
            "ts": datetime.now(UTC).isoformat(),
            "event_type": event_type,
            "session_id": self.session_id,
            "payload": sanitize_for_logging(payload),
            "metadata": sanitize_for_logging(metadata or {}),
        }
        try:
            line = json.dumps(record, default=_json_default)
            with self.events_path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        except (OSError, TypeError, ValueError) as exc:
            raise JournalError(f"Failed writing event journal: {exc}") from exc

    def write_model(
        self,
        event_type: str,
        model: BaseModel,
        *,
        exclude: set[str] | None = None,
    ) -> None:
        """Journal a result model as the event payload."""
        self.write_event(event_type, payload=model.model_dump(mode="json", exclude=exclude))

    def write_raw_snapshot(self, name: str, payload: Any) -> Path:
        """Write a full provider payload to its own file and return the path."""
        stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        output_path = self.raw_payload_dir / f"{stamp}_{self.session_id}_{_safe_name(name)}.json"
        try:
            text = json.dumps(
                sanitize_for_logging(payload),
                ensure_ascii=False,
                indent=2,
                default=_json_default,
            )
            output_path.write_text(text + "\n", encoding="utf-8")
        except (OSError, TypeError, ValueError) as exc:
            raise JournalError(f"Failed writing raw payload snapshot: {exc}") from exc
        return output_path

    def read_events(self, day: date | None = None) -> Iterator[dict[str, Any]]:
        """Yield event records for ``day`` (default: today, UTC) in write order."""
        path = self.path_for(day) if day is not None else self.events_path
        if not path.exists():
            return
        try:
            with path.open(encoding="utf-8") as fh:
                for line in fh:
                    if line.strip():
                        yield json.loads(line)
        except (OSError, json.JSONDecodeError) as exc:
            raise JournalError(f"Failed reading event journal {path}: {exc}") from exc
