from enum import Enum

from pydantic import BaseModel


class DocumentKind(str, Enum):
    ID_FRONT = "id_front"
    ID_BACK = "id_back"
    PAYMENT_RECEIPT = "payment_receipt"
    UTILITY_RECEIPT = "utility_receipt"
    SIGNATURE = "signature"


# Fixed processing order so a partial failure always points at the same step.
DOCUMENT_ORDER: tuple[DocumentKind, ...] = (
    DocumentKind.ID_FRONT,
    DocumentKind.ID_BACK,
    DocumentKind.PAYMENT_RECEIPT,
    DocumentKind.UTILITY_RECEIPT,
    DocumentKind.SIGNATURE,
)

# Payload attribute holding each document's data URL
DOCUMENT_FIELDS: dict[DocumentKind, str] = {
    DocumentKind.ID_FRONT: "id_front_image",
    DocumentKind.ID_BACK: "id_back_image",
    DocumentKind.PAYMENT_RECEIPT: "payment_receipt_image",
    DocumentKind.UTILITY_RECEIPT: "utility_receipt_image",
    DocumentKind.SIGNATURE: "signature_image",
}


class StoredDocumentResult(BaseModel):
    kind: DocumentKind
    locator: str
    url: str
    mime_type: str
    byte_size: int
