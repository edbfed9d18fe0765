"""
Deployment error types
"""

from typing import Optional


class DeploymentError(Exception):
    """Base class for every error that aborts a deployment run"""


class ConfigurationError(DeploymentError):
    """Missing or invalid credential, network parameters, artifacts or plan"""


class ConnectivityError(DeploymentError):
    """The RPC endpoint could not be reached"""


class TransactionFailure(DeploymentError):
    """A submitted transaction was rejected, reverted or never confirmed"""

    def __init__(self, step: str, message: str, tx_hash: Optional[str] = None):
        self.step = step
        self.tx_hash = tx_hash
        detail = f"{step}: {message}"
        if tx_hash:
            detail += f" (tx {tx_hash})"
        super().__init__(detail)


class EventNotFound(DeploymentError):
    """No matching event in the searched block range"""
