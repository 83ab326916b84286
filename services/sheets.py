"""
Spreadsheet-style tabular store on top of the SQL database.
A sheet is a named list of rows; row 1 is the header written when the sheet is created.
Each append commits on its own, so earlier rows survive a later failure.
"""
from __future__ import annotations

from typing import Any, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models import Sheet, SheetRow


class SheetStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def ensure_sheet(self, name: str, header: Sequence[str]) -> tuple[int, bool]:
        """Return (sheet id, created). Creating twice never duplicates the sheet or its header."""
        async with self.session_factory() as session:
            existing = await session.scalar(select(Sheet).where(Sheet.name == name))
            if existing is not None:
                return existing.id, False
            sheet = Sheet(name=name)
            session.add(sheet)
            try:
                await session.flush()
                session.add(SheetRow(sheet_id=sheet.id, row_index=1, values=list(header)))
                await session.commit()
            except IntegrityError:
                # Another writer created it first
                await session.rollback()
                existing = await session.scalar(select(Sheet).where(Sheet.name == name))
                return existing.id, False
            return sheet.id, True

    async def append_row(self, sheet_id: int, values: Sequence[Any]) -> int:
        async with self.session_factory() as session:
            last = await session.scalar(
                select(func.max(SheetRow.row_index)).where(SheetRow.sheet_id == sheet_id)
            )
            row_index = (last or 0) + 1
            session.add(SheetRow(sheet_id=sheet_id, row_index=row_index, values=list(values)))
            await session.commit()
            return row_index

    async def read_rows(self, name: str) -> list[list[Any]]:
        """All rows of a sheet in order, header first; empty if the sheet does not exist."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(SheetRow.values)
                .join(Sheet, Sheet.id == SheetRow.sheet_id)
                .where(Sheet.name == name)
                .order_by(SheetRow.row_index)
            )
            return [list(v) for v in result.scalars().all()]

    async def count_sheets(self, name: str) -> int:
        async with self.session_factory() as session:
            return await session.scalar(select(func.count()).select_from(Sheet).where(Sheet.name == name))
