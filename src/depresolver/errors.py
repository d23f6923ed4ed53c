"""Exception taxonomy for depresolver.

Per-package lookup errors are absorbed by the research unit and turned into
warnings; pipeline errors fail the job; storage errors surface to the caller.
"""


class DepResolverError(Exception):
    """Base class for all depresolver errors."""


class ValidationError(DepResolverError, ValueError):
    """Raised when a submission is empty or malformed. No job is created."""


class PerPackageLookupError(DepResolverError):
    """Raised when registry metadata for a single package cannot be obtained."""

    def __init__(self, package_name: str, message: str):
        super().__init__(message)
        self.package_name = package_name


class PackageNotFoundError(PerPackageLookupError):
    """The registry has no such package. Terminal, never retried."""


class RegistryError(PerPackageLookupError):
    """The registry answered with an error or could not be reached."""


class PipelineError(DepResolverError):
    """Raised when a pipeline phase fails and the job must be marked failed."""


class PipelineTimeoutError(PipelineError):
    """Raised when the pipeline runs past its deadline."""


class StorageError(DepResolverError):
    """Raised when the job store cannot read or write a record."""


class InvalidTransitionError(DepResolverError):
    """Raised when a job record would leave a terminal state."""


class BindAddressError(DepResolverError):
    """Raised when the service would listen on a non-loopback host without opt-in."""
