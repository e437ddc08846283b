# docchat/errors.py
"""
Error taxonomy shared by the pipeline and the API layer.

The API layer maps each class to a structured response; raw provider or
parser exceptions are always wrapped into one of these before they leave
the component that caught them.
"""


class DocChatError(Exception):
    """Base class for all expected application failures."""


class InputError(DocChatError):
    """Request rejected before any retrieval work (e.g. empty question)."""


class RetrievalFailure(DocChatError):
    """Similarity index unavailable; callers degrade to empty context."""


class ModelError(DocChatError):
    """Generation failed."""


class ModelAuthError(ModelError):
    """Provider rejected the credentials. Message is user-actionable."""


class ModelFailure(ModelError):
    """Any other generation failure."""


class IngestError(DocChatError):
    """A single document could not be ingested."""


class UnsupportedFormat(IngestError):
    """File extension has no extractor."""


class DocumentParseError(IngestError):
    """File has a supported extension but could not be read."""
