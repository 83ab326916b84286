from __future__ import annotations

import logging
from datetime import datetime, timezone

from services.sheets import SheetStore

logger = logging.getLogger(__name__)

AUDIT_COLUMNS: tuple[str, ...] = ("timestamp", "action", "submissionId", "documentLocator", "details")


class AuditLog:
    """
    Best-effort event trail written to its own sheet.
    A failing audit write is logged and dropped; it never replaces the real outcome.
    """

    def __init__(self, sheets: SheetStore, sheet_name: str, enabled: bool = True):
        self.sheets = sheets
        self.sheet_name = sheet_name
        self.enabled = enabled
        self._sheet_id: int | None = None

    async def record(
        self,
        action: str,
        submission_id: str = "",
        document_locator: str = "",
        details: str = "",
    ) -> None:
        logger.info("audit %s submission=%s locator=%s %s", action, submission_id or "-", document_locator or "-", details)
        if not self.enabled:
            return
        try:
            if self._sheet_id is None:
                self._sheet_id, _ = await self.sheets.ensure_sheet(self.sheet_name, AUDIT_COLUMNS)
            await self.sheets.append_row(
                self._sheet_id,
                [datetime.now(timezone.utc).isoformat(), action, submission_id, document_locator, details],
            )
        except Exception:
            logger.exception("Failed to write audit event %s", action)
