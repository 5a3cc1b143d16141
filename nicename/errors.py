"""
Errors raised by the rename procedure.

Every failure is fatal for the command; the CLI turns these into an
``Error:`` line and a process exit status.
"""


class NicenameError(Exception):
    """Base error. ``exit_code`` is what the CLI exits with."""

    exit_code = 1

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidNicenameError(NicenameError):
    pass


class SameNicenameError(NicenameError):
    pass


class UserNotFoundError(NicenameError):
    pass


class RenameFailedError(NicenameError):
    pass


class SearchReplaceError(NicenameError):
    """`wp search-replace` exited non-zero; exit_code is the child's status."""


class ConfigurationError(NicenameError):
    """Settings contradict what the database holds."""
