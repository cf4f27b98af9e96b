class ConfigurationError(ValueError):
    """Raised when the deployment description is invalid before anything reaches CDK."""


class ExternalProvisioningError(RuntimeError):
    """Raised when the provisioning engine (CDK synthesis) reports a failure.

    The engine's message is kept verbatim and the original exception is chained.
    """
