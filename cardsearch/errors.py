"""Error types raised by the search pipeline.

Every error carries an HTTP-style ``status_code`` so the transport layer can
translate it without knowing the pipeline internals.
"""
from __future__ import annotations


class SearchError(Exception):
    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NoResultsError(SearchError):
    """The search backend matched nothing for the request."""

    status_code = 404

    def __init__(
        self,
        message: str = "No search products result",
        status_code: int | None = None,
        *,
        transliterate: bool = False,
    ) -> None:
        super().__init__(message, status_code)
        self.transliterate = transliterate


class UpstreamFailure(SearchError):
    """A collaborator (backend, store, resolver) failed or timed out."""

    status_code = 502


class DataInconsistency(SearchError):
    """Relational metadata is missing for an id the search backend returned."""

    status_code = 500

    def __init__(self, message: str, missing_ids: list[int] | None = None) -> None:
        super().__init__(message)
        self.missing_ids = list(missing_ids or [])
