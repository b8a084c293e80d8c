"""
Error taxonomy for the proxy deployer.

Every fatal condition raised by the deployer derives from DeploymentError so
the CLI can turn it into a non-zero exit status.
"""

from typing import Optional


class DeploymentError(Exception):
    """Base class for all deployer errors"""


class UnknownNetwork(DeploymentError):
    """Network is not registered or has no usable companion"""

    def __init__(self, name: str, reason: Optional[str] = None):
        self.name = name
        self.reason = reason
        message = f"Unknown network '{name}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class DependencyNotDeployed(DeploymentError):
    """A required contract has no deployment record on the network"""

    def __init__(self, logical_name: str, network: str):
        self.logical_name = logical_name
        self.network = network
        super().__init__(f"No deployment found for '{logical_name}' on {network}")


class TemplateRenderError(DeploymentError):
    """The dispute template or its mapping could not be synthesized"""


class SubmitFailure(DeploymentError):
    """The deployment transaction failed or could not be sent"""

    def __init__(self, logical_name: str, reason: str, tx_hash: Optional[str] = None):
        self.logical_name = logical_name
        self.reason = reason
        self.tx_hash = tx_hash
        message = f"Deployment of {logical_name} failed: {reason}"
        if tx_hash:
            message = f"{message} (tx {tx_hash})"
        super().__init__(message)


class RecordExists(DeploymentError):
    """A deployment record is already stored under this name"""

    def __init__(self, logical_name: str, network: str):
        self.logical_name = logical_name
        self.network = network
        super().__init__(f"'{logical_name}' is already recorded on {network}")


class MissingArtifact(DeploymentError):
    """No compiled artifact is available for a contract"""

    def __init__(self, contract_name: str, search_root: str):
        self.contract_name = contract_name
        self.search_root = search_root
        super().__init__(f"No artifact for {contract_name} under {search_root}")
