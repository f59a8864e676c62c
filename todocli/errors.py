"""Errors raised by the command-line commands."""


class CommandFailed(Exception):
    """A command could not be carried out."""

    def __init__(self, message: str = "command failed") -> None:
        super().__init__(message)


class IdNotFound(Exception):
    """No task carries the requested id."""

    def __init__(self, message: str = "specified id not found") -> None:
        super().__init__(message)