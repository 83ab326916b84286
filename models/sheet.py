from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship

from database import Base


class Sheet(Base):
    __tablename__ = "sheets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(128), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    rows = relationship("SheetRow", back_populates="sheet", order_by="SheetRow.row_index")


class SheetRow(Base):
    __tablename__ = "sheet_rows"
    __table_args__ = (UniqueConstraint("sheet_id", "row_index", name="uq_sheet_row_index"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    sheet_id = Column(Integer, ForeignKey("sheets.id", ondelete="CASCADE"), nullable=False, index=True)
    # 1-based like a spreadsheet; row 1 is the header
    row_index = Column(Integer, nullable=False)
    values = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    sheet = relationship("Sheet", back_populates="rows")
