"""
Fatal conditions detected before the server handoff.

Each category carries the process exit code ``main`` terminates with.
"""


class BootstrapError(RuntimeError):
    """Base class for entrypoint failures."""

    exit_code = 1


class ConfigurationError(BootstrapError):
    """A required setting is unset or points at nothing."""

    exit_code = 2


class PrerequisiteError(BootstrapError):
    """A required external tool is missing or unusable."""

    exit_code = 3


class AcquisitionError(BootstrapError):
    """Downloading, verifying or installing the server files failed."""

    exit_code = 4
