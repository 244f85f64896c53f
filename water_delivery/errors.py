"""Domain exceptions. main.py maps each to an HTTP status."""


class DomainError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class BusinessRuleError(DomainError):
    status_code = 422


class DuplicateError(DomainError):
    status_code = 409


class ForbiddenError(DomainError):
    status_code = 403


class ReactionError(Exception):
    """A reaction raised while handling a published event.

    The order mutation that produced the event is already persisted when this
    is raised; nothing is rolled back.
    """

    def __init__(self, event_name: str, reaction: str, original: Exception):
        super().__init__(f"{reaction} failed on {event_name}: {original!r}")
        self.event_name = event_name
        self.reaction = reaction
        self.original = original
