class DeploymentError(Exception):
    """Base class for errors raised while preparing or running a deployment."""


class DeploymentConfigError(DeploymentError, ValueError):
    """Raised when the deployment parameters are malformed or unresolvable."""


class NetworkConfigurationError(DeploymentConfigError):
    """Raised when the selected network profile is unknown or incomplete."""


class TransactionFailed(DeploymentError):
    """Raised when a deployment or contract transaction is rejected by the chain."""

    def __init__(self, contract_name: str, method: str, reason: str = ""):
        self.contract_name = contract_name
        self.method = method
        self.reason = reason
        message = f"{contract_name}.{method} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
