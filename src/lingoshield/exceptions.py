"""
Exception classes for LingoShield.

Separated from the modules that raise them to avoid circular imports between
the pipeline, the providers and the file-format readers.
"""


class TranslationError(Exception):
    """Translation error with optional code and details."""

    def __init__(self, message: str, code: str = None, details: dict = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "details": self.details}


class ProviderError(TranslationError):
    """The external translation provider failed for one unit of work."""


class ConfigurationError(TranslationError):
    """Provider or pipeline configuration is missing or invalid."""


class MalformedInputError(TranslationError):
    """Input could not be read at all (invalid TMX, CSV or JSON)."""


class ExtractionError(TranslationError):
    """A matched JSON schema could not be walked."""
