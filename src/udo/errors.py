"""Exceptions raised by the UDO core."""


class UdoError(Exception):
    """Base class for UDO errors."""


class NotLinkedError(UdoError):
    """The working directory has no readable link marker."""

    def __init__(self, project_path: str, detail: str | None = None):
        self.project_path = project_path
        message = f"UDO not linked in {project_path}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class NoProjectError(UdoError):
    """An operation that needs a linked project was called without one."""
