"""gravapi errors - exception hierarchy.

Every error reaching the CLI is printed as ``ERROR: <message>`` and the
process exits with ``exit_code``. There is one failure code; callers only
distinguish success from failure.

    GravapiError
    +-- ConfigError
    |   +-- ConfigMissingError
    |   +-- ConfigParseError
    |   +-- ConfigWriteError
    +-- NotConfiguredError
    +-- NotAuthenticatedError
    +-- ConflictingParametersError
    +-- InvalidJSONError
    +-- ParameterFileError
    +-- SubprocessError_
    |   +-- SubprocessLaunchError
    |   +-- SubprocessExecutionError
    +-- LoginFailedError
"""

EXIT_FAILURE = 1


class GravapiError(Exception):
    """Base exception for all gravapi errors."""

    exit_code: int = EXIT_FAILURE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(GravapiError):
    """Problems with the stored configuration file."""


class ConfigMissingError(ConfigError):
    """The configuration file is absent or unreadable."""


class ConfigParseError(ConfigError):
    """The configuration file exists but is not a valid YAML mapping."""


class ConfigWriteError(ConfigError):
    """The configuration file could not be written."""


class NotConfiguredError(GravapiError):
    """No base URL has been configured."""


class NotAuthenticatedError(GravapiError):
    """No token is stored."""


class ConflictingParametersError(GravapiError):
    """--data and --file were both given."""


class InvalidJSONError(GravapiError):
    """Inline data or a parameter file is not valid JSON."""


class ParameterFileError(GravapiError):
    """A parameter file could not be read."""


class SubprocessError_(GravapiError):
    """An external program failed.

    Named with a trailing underscore to avoid confusion with
    ``subprocess.SubprocessError``.
    """

    def __init__(self, message: str, program: str = ""):
        super().__init__(message)
        self.program = program


class SubprocessLaunchError(SubprocessError_):
    """The external program could not be started."""


class SubprocessExecutionError(SubprocessError_):
    """The external program exited with a non-zero status."""

    def __init__(self, message: str, program: str = "", returncode: int = 0, stderr: str = ""):
        super().__init__(message, program)
        self.returncode = returncode
        self.stderr = stderr


class LoginFailedError(GravapiError):
    """The login request did not succeed."""
