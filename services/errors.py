"""
Failure taxonomy for the ingestion pipeline.
Each gate raises one of these; the API layer maps ``status_code`` and
``public_message`` onto the response and never exposes anything else.
"""


class IngestionError(Exception):
    status_code = 500
    public_message = "The submission could not be processed"
    audit_action = "error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.public_message
        super().__init__(self.detail)


class ValidationError(IngestionError):
    status_code = 400
    public_message = "Invalid submission data"
    audit_action = "payload_invalid"


class PayloadMissingError(ValidationError):
    public_message = "No data received"
    audit_action = "payload_missing"


class AuthorizationError(IngestionError):
    status_code = 403
    public_message = "Access denied"


class OriginDeniedError(AuthorizationError):
    status_code = 403
    public_message = "Origin not authorized"
    audit_action = "origin_denied"


class InvalidTokenError(AuthorizationError):
    status_code = 401
    public_message = "Invalid token, access denied"
    audit_action = "token_invalid"


class RateLimitError(IngestionError):
    status_code = 429
    public_message = "Request limit exceeded. Please try again later."
    audit_action = "rate_limited"


class ConcurrencyTimeoutError(IngestionError):
    status_code = 503
    public_message = "Too many concurrent requests. Please try again in a few moments."
    audit_action = "lock_timeout"


class StorageError(IngestionError):
    """Document-level failure; recorded in the audit trail, never aborts a submission."""

    public_message = "Document could not be stored"
    audit_action = "document_failed"


class DocumentDecodeError(StorageError):
    public_message = "Document content could not be decoded"


class DocumentSizeError(StorageError):
    public_message = "Document size is outside the accepted range"


class DocumentWriteError(StorageError):
    public_message = "Document could not be written"


class PersistenceError(IngestionError):
    status_code = 500
    public_message = "Error saving data"
    audit_action = "persistence_failed"
