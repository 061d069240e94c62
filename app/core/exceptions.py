"""
Error taxonomy for the vibe feed engine.

Each error carries the HTTP status it maps to so the API layer can
translate it without knowing where it was raised.
"""


class VibeFeedError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(VibeFeedError):
    """Malformed input: ids that are not positive integers, bad cursors, missing fields."""
    status_code = 400


class NotFound(VibeFeedError):
    """A game or its embedding for the requested facet is absent."""
    status_code = 404


class IncompatibleFacet(VibeFeedError):
    """Two embeddings from different facets or model versions were compared."""
    status_code = 400


class UpstreamError(VibeFeedError):
    """The embedding store or embedding producer could not be reached."""
    status_code = 502


class RateLimited(VibeFeedError):
    status_code = 429

    def __init__(self, message: str = "Too many requests. Please try again later.", retry_after: int = 60):
        super().__init__(message)
        self.retry_after = retry_after


class ComposeFailed(VibeFeedError):
    """Every content stream of a feed request failed."""
    status_code = 503
