"""Error taxonomy shared by the services and the HTTP layer.

Every business-rule violation raised by the eligibility, casting and tally
code is a ``VotingError``. The HTTP layer renders it as ``{"error": message}``
with the class's status code, so callers only ever see one stable category per
failure and never a raw storage error.
"""


class VotingError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(VotingError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(VotingError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(VotingError):
    status_code = 404
    default_message = "Not found"


class InvalidState(VotingError):
    status_code = 400
    default_message = "Election is not currently accepting votes"


class AlreadyVoted(VotingError):
    status_code = 409
    default_message = "You have already voted in this election"

    def __init__(self, message: str = None):
        # The message is fixed: a duplicate caught by the pre-check and one
        # caught by the unique index must look the same to the caller.
        super().__init__(self.default_message)


class ValidationError(VotingError):
    status_code = 400
    default_message = "Invalid ballot"


class Internal(VotingError):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        super().__init__(self.default_message)
