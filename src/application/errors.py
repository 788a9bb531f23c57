from datetime import datetime
from uuid import UUID


class FeedEngineError(Exception):
    """Base class for errors raised by the feed and sponsorship core."""


class UpstreamUnavailableError(FeedEngineError):
    """A collaborator (listing store, sponsorship storage) failed. Retryable."""

    def __init__(self, source: str, cause: Exception | None = None) -> None:
        self.source = source
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{source} unavailable{detail}")


class SponsorshipValidationError(FeedEngineError):
    """Bad sponsorship parameters. Not retryable without correction."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class ListingNotFoundError(SponsorshipValidationError):
    """Listing missing, not owned by the requester, or not public."""

    def __init__(self, listing_id: UUID) -> None:
        self.listing_id = listing_id
        super().__init__(f"Listing {listing_id} not found or not owned by requester.")


class SponsorshipConflictError(FeedEngineError):
    """The listing already carries a confirmed, running sponsorship."""

    def __init__(self, listing_id: UUID, sponsored_until: datetime) -> None:
        self.listing_id = listing_id
        self.sponsored_until = sponsored_until
        super().__init__(
            f"Listing {listing_id} is already sponsored until {sponsored_until.date().isoformat()}."
        )


class SponsorshipNotFoundError(FeedEngineError):
    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"No sponsorship for checkout session {session_id}.")


class StaleRequestError(FeedEngineError):
    """A feed result arrived for a generation that has since been abandoned."""

    def __init__(self, expected_generation: int, actual_generation: int) -> None:
        self.expected_generation = expected_generation
        self.actual_generation = actual_generation
        super().__init__(
            f"Result for generation {expected_generation} dropped; feed is at {actual_generation}."
        )


class FeedBusyError(FeedEngineError):
    """A load is already in flight for this feed state."""

    def __init__(self) -> None:
        super().__init__("A feed request is already in progress.")


class FeedSessionNotFoundError(FeedEngineError):
    def __init__(self, session_id: UUID) -> None:
        self.session_id = session_id
        super().__init__(f"Feed session {session_id} not found.")
