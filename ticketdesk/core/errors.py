class PolicyError(Exception):
    """Base class for policy engine errors."""
    status_code = 400


class StoreUnavailable(PolicyError):
    """The backing store (database or redis) could not be reached or failed mid-call."""
    status_code = 503


class InvalidRoutingRule(PolicyError):
    """Raised when a routing rule is rejected at write time."""
    status_code = 422


class SystemRoleViolation(PolicyError):
    """System roles cannot be renamed or deleted."""
    status_code = 409


class MissingRequiredFields(PolicyError):
    status_code = 422

    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(f"Missing required fields: {', '.join(fields)}")


class InvalidStatusTransition(PolicyError):
    status_code = 409


class TicketAccessDenied(PolicyError):
    status_code = 403


class DuplicateRoleName(PolicyError):
    status_code = 409
