"""Error types for composer-export."""


class ComposerExportError(Exception):
    """Base class for errors that abort an export."""


class UnsupportedPlatform(ComposerExportError):
    """Raised when no workspace location is known for the running OS."""

    def __init__(self, platform: str):
        self.platform = platform
        super().__init__(f"Unsupported platform: {platform}")


class WorkspaceRootNotFound(ComposerExportError):
    """Raised when the workspaceStorage directory does not exist."""

    def __init__(self, path):
        self.path = path
        super().__init__(
            f"Workspace path not found: {path}. Please set WORKSPACE_PATH "
            "environment variable to the correct path."
        )


class StoreReadFailure(ComposerExportError):
    """A value read from a state database is unreadable or malformed.

    Callers treat this as "no data" for the workspace or composer involved.
    """


class UserQuit(Exception):
    """The user entered the quit sentinel at a prompt."""

    exit_code = 0
