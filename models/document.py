from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func

from database import Base


class StorageFolder(Base):
    __tablename__ = "storage_folders"
    __table_args__ = (UniqueConstraint("parent_id", "name", name="uq_folder_parent_name"),)

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    parent_id = Column(String(64), ForeignKey("storage_folders.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class StoredDocument(Base):
    __tablename__ = "stored_documents"

    id = Column(String(64), primary_key=True, index=True)
    submission_id = Column(String(64), nullable=False, index=True)
    kind = Column(String(32), nullable=False)
    folder_id = Column(String(64), ForeignKey("storage_folders.id"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    mime_type = Column(String(64), nullable=False)
    byte_size = Column(Integer, nullable=False)
    # Anyone holding the locator can read the file
    locator = Column(String(64), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
