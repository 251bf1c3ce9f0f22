class ListingError(Exception):
    """Base for every recoverable, session-local failure."""

    error_code = "listing_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ListingError):
    """Raised when an uploaded file has an unsupported format or is too large."""

    error_code = "invalid_file"


class NormalizationError(ListingError):
    """Raised when an image cannot be decoded or re-encoded."""

    error_code = "normalization_failed"


class EmptyInputError(ListingError):
    error_code = "no_images"


class MissingCredentialsError(ListingError):
    error_code = "api_key_required"


class TransportError(ListingError):
    """Raised when the inference endpoint is unreachable or returns a non-success status."""

    error_code = "transport_failed"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(ListingError):
    """Raised when the model output cannot be parsed into an analysis result."""

    error_code = "malformed_response"


class AnalysisInProgressError(ListingError):
    error_code = "analysis_in_progress"


class NothingToExportError(ListingError):
    error_code = "no_listing"


class UnsupportedModelError(ListingError):
    error_code = "unsupported_model"
