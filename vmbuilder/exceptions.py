"""Custom exceptions for vmbuilder."""


class BuildError(RuntimeError):
    """Raised on unrecoverable configuration or runtime errors."""


class ConfigurationError(BuildError):
    """Raised when build settings are malformed (bad coordinates, templates, ranges)."""


class AllocationError(BuildError):
    """Raised when a port or controller slot cannot be allocated."""


class DriverError(BuildError):
    """Raised when a hypervisor driver operation fails."""


class HostIPError(BuildError):
    """Raised when a host IP discovery strategy cannot determine an address."""


class StateContractError(KeyError):
    """Raised when a step reads a state key that is absent or has the wrong type."""
