class FeedFetchError(Exception):
    """Raised when a single feed cannot be fetched or parsed."""


class AllFeedsFailedError(Exception):
    """Raised when every configured feed failed in one aggregation pass."""

    def __init__(self, sources_failed: int):
        super().__init__(f"All {sources_failed} feed sources failed")
        self.sources_failed = sources_failed
