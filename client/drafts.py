"""
Per-slot staging of uploaded images that survives a restart of the form.
Backed by a JSON file; every operation is best-effort and never raises on I/O failure.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from schemas.document import DocumentKind

logger = logging.getLogger(__name__)


class DraftStore:
    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self) -> dict[str, dict[str, str]]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("Draft storage unreadable at %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, dict[str, str]]) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(data, f)
            tmp.replace(self.path)
            return True
        except OSError as exc:
            logger.warning("Draft storage unavailable at %s: %s", self.path, exc)
            return False

    def save(self, slot: DocumentKind, data_url: str, file_name: str) -> bool:
        """Overwrite the slot. Returns False when the draft could not be persisted."""
        data = self._read()
        data[slot.value] = {"dataUrl": data_url, "fileName": file_name}
        return self._write(data)

    def load(self, slot: DocumentKind) -> Optional[tuple[str, str]]:
        entry = self._read().get(slot.value)
        if not isinstance(entry, dict) or not entry.get("dataUrl"):
            return None
        return entry["dataUrl"], entry.get("fileName", "")

    def clear(self, slot: DocumentKind) -> None:
        data = self._read()
        if data.pop(slot.value, None) is not None:
            self._write(data)

    def clear_all(self, slots: tuple[DocumentKind, ...] | list[DocumentKind] = tuple(DocumentKind)) -> None:
        data = self._read()
        removed = [s for s in slots if data.pop(s.value, None) is not None]
        if removed:
            self._write(data)
