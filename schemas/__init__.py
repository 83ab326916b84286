from schemas.document import (
    DOCUMENT_FIELDS,
    DOCUMENT_ORDER,
    DocumentKind,
    StoredDocumentResult,
)
from schemas.submission import (
    ACCOUNT_TYPES,
    BANK_OPTIONS,
    OTHER_BANK,
    BeneficiarySchema,
    SubmissionPayload,
    SubmissionResponse,
)

__all__ = [
    "ACCOUNT_TYPES",
    "BANK_OPTIONS",
    "OTHER_BANK",
    "BeneficiarySchema",
    "DOCUMENT_FIELDS",
    "DOCUMENT_ORDER",
    "DocumentKind",
    "StoredDocumentResult",
    "SubmissionPayload",
    "SubmissionResponse",
]
