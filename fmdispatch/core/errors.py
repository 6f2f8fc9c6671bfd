"""
Exceptions raised by the dispatch engine.
"""


class DispatchError(Exception):
    """Base class for every error raised by fmdispatch operations."""


class UnknownFileType(DispatchError):
    """No rule in the consulted table matched the file name."""

    def __init__(self, operation, name):
        self.operation = operation
        self.name = name
        super().__init__(f"Don't know how to {operation} {name}")


class CommandFailure(DispatchError):
    """A spawned command or callback reported failure."""

    def __init__(self, operation, command, reason, output=None):
        self.operation = operation
        self.command = command
        self.reason = reason
        self.output = output
        message = f'{operation} failed ({reason}): {command}'
        if output:
            message += f'\nSee buffer {output}'
        super().__init__(message)


class UserDeclined(DispatchError):
    """The user refused a confirmation that the operation required."""


class TargetConflict(DispatchError):
    """Several sources were given but the destination cannot hold them."""


class ArchiveFormatUnsupported(DispatchError):
    """The matched archive rule cannot perform the requested action."""
