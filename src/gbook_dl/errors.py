from __future__ import annotations


class GbookError(Exception):
    """Base class for errors that abort processing of a single book."""


class FetchError(GbookError):
    def __init__(self, url: str, cause: Exception | None) -> None:
        super().__init__(f"Failed to fetch {url}: {cause}")
        self.url = url
        self.cause = cause


class BootstrapError(GbookError):
    def __init__(
        self,
        document_id: str,
        *,
        status_code: int | None = None,
        reason: str = "",
    ) -> None:
        detail = f"{status_code} {reason}".strip() if status_code else reason
        super().__init__(f"Init failed for {document_id}: {detail}")
        self.document_id = document_id
        self.status_code = status_code
        self.reason = reason


class NoPagesError(GbookError):
    def __init__(self, document_id: str) -> None:
        super().__init__(f"No pages found for {document_id}")
        self.document_id = document_id
