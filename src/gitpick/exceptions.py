"""Custom exceptions for gitpick."""

from typing import Optional


class GitPickError(Exception):
    """Base exception for all gitpick errors."""


class NotARepositoryError(GitPickError):
    """Raised when the working directory is not inside a git work tree."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Not inside a git repository: {path}")


class DependencyMissingError(GitPickError):
    """Raised when an external tool needed for interactive mode is not installed."""

    def __init__(self, tool: str) -> None:
        self.tool = tool
        super().__init__(f"{tool} is not installed. Install it and try again.")


class GitOperationError(GitPickError):
    """Exception raised for errors in git operations."""

    def __init__(self, operation: str, branch: Optional[str] = None, message: Optional[str] = None) -> None:
        self.operation = operation
        self.branch = branch
        self.message = message

        error_msg = f"Git operation '{operation}' failed"
        if branch:
            error_msg += f" for branch '{branch}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class BackendSyncError(GitOperationError):
    """Raised when fetching from the remote fails (network, auth, missing remote)."""

    def __init__(self, remote: str, message: Optional[str] = None) -> None:
        self.remote = remote
        super().__init__("fetch", message=message or f"could not sync with '{remote}'")


class DeleteError(GitOperationError):
    """A single branch could not be deleted."""

    def __init__(self, branch: str, message: Optional[str] = None) -> None:
        super().__init__("delete", branch, message)


class SwitchError(GitOperationError):
    """Checking out a branch failed."""

    def __init__(self, branch: Optional[str], message: Optional[str] = None) -> None:
        super().__init__("switch", branch, message)


class PickerError(GitPickError):
    """fzf failed to run (bad option, no terminal, too old for the ``load`` event)."""
