"""Exception types raised inside the engine.

None of these escape to UI code: components catch them at their boundary
and turn them into statuses or boolean results.
"""


class VipinatorError(Exception):
    """Base class for engine errors."""
    pass


class GatewayError(VipinatorError):
    """An OS network command failed."""

    def __init__(self, message: str, command: tuple = ()):
        super().__init__(message)
        self.command = tuple(command)


class GatewayLaunchError(GatewayError):
    """The command could not be started (missing binary, permissions)."""
    pass


class GatewayExecutionError(GatewayError):
    """The command ran but failed: nonzero exit, stderr only, or no output."""

    def __init__(
        self,
        message: str,
        command: tuple = (),
        returncode: int = 0,
        stderr: str = "",
    ):
        super().__init__(message, command)
        self.returncode = returncode
        self.stderr = stderr


class ParseAmbiguity(VipinatorError):
    """A service listing record could not be interpreted."""
    pass
