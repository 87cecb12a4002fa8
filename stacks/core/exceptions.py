
class StacksError(Exception):
    """Base for every expected circulation failure.

    `reason` is a stable, machine readable code (e.g. NO_COPIES_AVAILABLE)
    the calling layer can map onto user facing messages.
    """

    reason = "ERROR"

    def __init__(self, message=None, reason=None):
        self.reason = reason or self.reason
        self.message = message or self.reason.replace("_", " ").capitalize()
        super().__init__(self.message)

    def __repr__(self):
        return f"{type(self).__name__}(reason={self.reason!r}, message={self.message!r})"

class NotFound(StacksError):
    reason = "NOT_FOUND"

class Conflict(StacksError):
    reason = "CONFLICT"

class InvalidTransition(StacksError):
    reason = "INVALID_TRANSITION"

class PolicyViolation(StacksError):
    reason = "POLICY_VIOLATION"

class ValidationError(StacksError):
    reason = "VALIDATION_ERROR"

class InvariantViolation(StacksError):
    """Copy-count arithmetic failed to reconcile. Always a defect."""
    reason = "INVARIANT_VIOLATION"
