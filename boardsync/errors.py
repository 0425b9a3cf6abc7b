class BoardSyncError(Exception):
    """Base class for errors raised by boardsync."""


class CriticalStepError(BoardSyncError):
    """
    A step the event exists to perform failed.

    Raised out of the lifecycle router so the trigger source sees a failed
    delivery and redelivers the whole event.  The original exception is
    chained as ``__cause__``.
    """

    def __init__(self, event: str, step: str, cause: BaseException) -> None:
        super().__init__(f"{event}: critical step {step!r} failed: {cause}")
        self.event = event
        self.step = step
        self.cause = cause


class BlobStoreError(BoardSyncError):
    """One or more blob deletions under a prefix failed."""


class SearchIndexError(BoardSyncError):
    """The search index rejected or failed to store a document."""


class UnsupportedDialectError(BoardSyncError):
    """The primary store engine uses a dialect without insert-on-conflict support."""
