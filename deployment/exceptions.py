"""Exceptions raised while deploying and wiring the Zars contracts."""


class DeploymentError(Exception):
    """Base exception for all fatal deployment errors."""


class ConfigurationError(DeploymentError, ValueError):
    """Raised when a network profile or its plan is invalid."""


class UnknownNetworkProfile(ConfigurationError):
    """Raised when no profile exists for the requested network."""


class AlreadyPublished(ConfigurationError):
    """Raised when a registry file already holds a deployment for the chain."""


class RegistryError(DeploymentError):
    pass


class DuplicateContract(RegistryError):
    """Raised when a logical contract name is registered twice."""


class UnknownContract(RegistryError):
    """Raised when a logical contract name is resolved before it is registered."""


class GasPriceUnavailable(DeploymentError):
    """Raised when the network fee cannot be queried after all retries."""


class GasPriceTimeout(DeploymentError, TimeoutError):
    """Raised when the gas price stays above the threshold for too long."""


class GasPriceWaitCancelled(DeploymentError):
    pass


class ContractDeploymentFailed(DeploymentError):
    """Raised when a creation transaction cannot be submitted or confirmed."""


class WiringFailed(DeploymentError):
    """Raised when an initialize or approval transaction fails."""


class DeploymentAborted(DeploymentError):
    """Raised when the operator declines a confirmation prompt."""
