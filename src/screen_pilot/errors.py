# errors.py
# Exception taxonomy for the screen pilot.
#
# Decode anomalies are never raised. The protocol decoder reports them as
# absent fields. ActionError is recoverable and is fed back to the model as a
# user turn. PilotStateError is a programming error and always fatal.


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class PilotError(Exception):
    """Base class for every error raised by screen_pilot."""


class ActionError(PilotError):
    """Raised when an action cannot be narrowed or performed. Recoverable."""


class PilotStateError(PilotError):
    """Raised when a component is driven before it is ready. Always fatal."""
