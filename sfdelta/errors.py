"""Exceptions raised by the delta and backup commands.

Fatal errors end the run with exit code 1. ``MarkerQueryError`` and
``RetrievalError`` are caught by the pipeline and only reduce what it does.
"""


class DeltaError(Exception):
    """Base class for every error the commands report."""


class ConfigError(DeltaError):
    pass


class NotAProjectError(DeltaError):
    """The working tree has no sfdx-project.json."""


class NotARepositoryError(DeltaError):
    pass


class VersionControlError(DeltaError):
    pass


class CliNotFoundError(DeltaError):
    pass


class MarkerQueryError(DeltaError):
    """The last-deployed marker could not be read from the org."""


class RetrievalError(DeltaError):
    """sf project retrieve failed (first-time components, unsupported types...)."""


class ManifestGenerationError(DeltaError):
    pass
