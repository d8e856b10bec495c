"""Error taxonomy for the matching core.

Routers translate these into HTTP responses; services raise them and never
return HTTP concerns themselves.
"""


class MatchingError(Exception):
    """Base class for all matching-core errors."""


class NotFoundError(MatchingError):
    def __init__(self, kind: str, record_id):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind.capitalize()} {record_id} not found")


class AlreadyMatchedError(MatchingError):
    def __init__(self, kind: str, record_id, counterpart_id=None):
        self.kind = kind
        self.record_id = record_id
        self.counterpart_id = counterpart_id
        detail = f"{kind.capitalize()} {record_id} is already matched"
        if counterpart_id is not None:
            detail += f" to {counterpart_id}"
        super().__init__(detail)


class ValidationError(MatchingError):
    """A malformed amount or date field."""


class PersistenceError(MatchingError):
    """The storage collaborator failed."""
