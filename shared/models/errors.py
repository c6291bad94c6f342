"""Exception hierarchy for the RAG pipeline.

Each subclass carries the HTTP status code the API layer answers with, so
routers can translate pipeline failures without knowing their origin.
"""


class RagError(Exception):
    """Base class for expected pipeline failures."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingInputError(RagError):
    """A required input (file, question) was not provided."""

    status_code = 400


class EmptyDocumentError(RagError):
    """Text extraction produced no usable text."""

    status_code = 400


class EmptyIndexError(RagError):
    """A question was asked before anything was indexed."""

    status_code = 400

    def __init__(self, message: str = "No documents indexed yet") -> None:
        super().__init__(message)


class UploadTooLargeError(RagError):
    status_code = 413


class IndexDimensionError(RagError):
    """New vectors do not match the dimensionality already stored in the index."""

    status_code = 409


class EmbeddingError(RagError):
    """The remote embedding API failed or returned an unusable response."""


class CompletionError(RagError):
    """The remote completion API failed or returned an unusable response."""
