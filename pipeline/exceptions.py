"""Errors raised while building snapshot export pipelines."""


class PipelineError(Exception):
    """Base exception for all pipeline provisioning errors."""

    pass


class ConfigurationError(PipelineError):
    """Invalid provisioning input."""

    pass


class UnknownEventError(ConfigurationError):
    """An event identity outside the supported enumeration."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Unknown RDS event identity '{value}'")


class ProvisioningError(PipelineError):
    """The trust graph cannot be built as requested."""

    pass


class OrderingError(ProvisioningError):
    """A resource was referenced before it was created."""

    def __init__(self, resource: str, message: str):
        self.resource = resource
        super().__init__(f"{resource}: {message}")
