"""Exceptions raised by the boat base."""


class BoatError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(BoatError):
    """Missing or invalid configuration, or a command the configuration cannot serve."""


class AllocationError(BoatError):
    """The thrust allocator could not be set up for the requested goal."""


class OperationCancelled(BoatError):
    """A blocking operation was superseded or cancelled before it finished."""


class DeadlineExceeded(OperationCancelled):
    """The caller's timeout elapsed while an operation was waiting."""


class MultiError(BoatError):
    """Several errors that happened while handling one command."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("; ".join(str(e) for e in self.errors))


def combine_errors(*errors):
    """Collapse errors into None, the single error, or a MultiError."""
    errors = [e for e in errors if e is not None]
    if not errors:
        return None
    if len(errors) == 1:
        return errors[0]
    return MultiError(errors)
