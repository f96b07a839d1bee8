"""Exception types raised by the triage service."""


class TriageError(Exception):
    """Base class for triage errors."""


class TransientAPIError(TriageError):
    """A repository API call failed for a reason that may go away.

    Network errors, timeouts, rate limiting and server-side errors all land
    here. The action that raised it is marked failed and never retried.
    """


class MalformedEventError(TriageError):
    """A trigger payload could not be turned into an event."""


class ConfigError(TriageError):
    """The rule file or the runtime settings are invalid."""
