from models.document import StorageFolder, StoredDocument
from models.sheet import Sheet, SheetRow

__all__ = [
    "Sheet",
    "SheetRow",
    "StorageFolder",
    "StoredDocument",
]
