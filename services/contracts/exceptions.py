"""
Contract System Exceptions

Custom exceptions for contract drafting, assembly, and signing errors.
"""


class ContractError(Exception):
    """Base exception for all contract system errors."""
    pass


class ValidationError(ContractError):
    """
    Raised when a submitted request body is malformed.

    Carries the offending field so the caller can report it
    before any external call is made.
    """
    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(message)


class PdfAssemblyError(ContractError):
    """Raised when the contract PDF cannot be rendered."""
    pass


class ContractGenerationError(ContractError):
    """Raised when the LLM stream cannot be started."""
    pass


class StreamRelayError(ContractError):
    """Raised when the LLM stream fails part-way through."""
    pass


class NotificationError(ContractError):
    """
    Raised when the email provider rejects a send.
    """
    def __init__(self, message: str, status_code: int = None, response_body: str = None):
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)


class PandaDocAPIError(ContractError):
    """
    Raised when PandaDoc API calls fail.

    Wraps the underlying API error with context.
    """
    def __init__(self, message: str, status_code: int = None, response_body: str = None):
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)


class DocumentCreateError(PandaDocAPIError):
    """Raised when the document upload is rejected. Never retried."""
    pass


class DocumentSendError(PandaDocAPIError):
    """Raised when PandaDoc refuses to start the signing chain."""
    pass


class DocumentProcessingError(PandaDocAPIError):
    """Raised when PandaDoc reports the uploaded document as failed."""
    pass


class DocumentTimeoutError(PandaDocAPIError):
    """Raised when the document never reaches a sendable state."""
    pass
