class FriendGraphError(Exception):
    """Base class for errors raised by the friend-relationship engine."""

    code = "internal_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class InvalidInput(FriendGraphError):
    """Missing or malformed identifier."""

    code = "invalid_input"


class NotFound(FriendGraphError):
    """Referenced user or friend request does not exist."""

    code = "not_found"


class DuplicateRequest(FriendGraphError):
    """The pair already has a request outstanding or is already friends."""

    code = "duplicate_request"


class InvalidState(FriendGraphError):
    """Operation attempted on a request that is no longer pending."""

    code = "invalid_state"


class StorageFailure(FriendGraphError):
    """The backing store raised; the whole operation may be retried."""

    code = "internal_error"
