class FriendmapError(Exception):
    """Base class for errors that map to an HTTP status and an ``{"err": ...}`` body."""

    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequest(FriendmapError):
    default_message = "Invalid request"


class UserNotFound(FriendmapError):
    status_code = 404
    default_message = "User not found"


class NotFound(FriendmapError):
    status_code = 404
    default_message = "Not found"


class Forbidden(FriendmapError):
    status_code = 403
    default_message = "Not authorized"


class AlreadyFriends(FriendmapError):
    default_message = "Users are already friends"


class DuplicateRequest(FriendmapError):
    default_message = "Friend request already exists"


class InvalidState(FriendmapError):
    default_message = "Only pending requests can be resolved"


class NotFriends(FriendmapError):
    default_message = "User is not in your friends list"


class StoreError(FriendmapError):
    status_code = 500
    default_message = "Internal server error"
