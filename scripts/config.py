"""
Deployment configuration
Resolves network parameters and the deployer credential from .env / the environment
"""

import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

# Same networks as hardhat.config.js
NETWORKS: Dict[str, Dict[str, Any]] = {
    "optimism-sepolia": {
        "url": "https://sepolia.optimism.io",
        "chainId": 11155420,
    },
    "localhost": {
        "url": "http://127.0.0.1:8545",
        "chainId": 31337,
    },
}

DEFAULT_NETWORK = "optimism-sepolia"
DEFAULT_ARTIFACTS_DIR = "artifacts"
DEFAULT_RECEIPT_TIMEOUT = 120.0

_PRIVATE_KEY_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")
_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class DeployConfig:
    """Everything the orchestrator needs, resolved once at process start"""
    network: str
    rpc_url: str
    chain_id: int
    private_key: str
    artifacts_dir: str = DEFAULT_ARTIFACTS_DIR
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    poa: bool = False
    deployment_file: Optional[str] = None

    def redacted(self) -> Dict[str, Any]:
        """Config as a dict that is safe to log"""
        return {
            'network': self.network,
            'rpc_url': self.rpc_url,
            'chain_id': self.chain_id,
            'artifacts_dir': self.artifacts_dir,
            'receipt_timeout': self.receipt_timeout,
            'poa': self.poa,
            'deployment_file': self.deployment_file,
        }


def _parse_chain_id(value: str) -> int:
    try:
        chain_id = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"CHAIN_ID must be an integer, got {value!r}")
    if chain_id <= 0:
        raise ConfigurationError(f"CHAIN_ID must be positive, got {chain_id}")
    return chain_id


def _parse_timeout(value: str) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"RECEIPT_TIMEOUT must be a number, got {value!r}")
    if timeout <= 0:
        raise ConfigurationError(f"RECEIPT_TIMEOUT must be positive, got {timeout}")
    return timeout


def load_config(network: Optional[str] = None,
                env: Optional[Mapping[str, str]] = None,
                artifacts_dir: Optional[str] = None,
                deployment_file: Optional[str] = None) -> DeployConfig:
    """
    Build a DeployConfig from the environment.

    Args:
        network: Network name from NETWORKS, overrides NETWORK
        env: Mapping to read instead of os.environ (.env is not loaded then)
        artifacts_dir: Overrides ARTIFACTS_DIR
        deployment_file: Overrides DEPLOYMENT_FILE

    Returns:
        DeployConfig

    Raises:
        ConfigurationError: if the credential or network parameters are missing or invalid
    """
    if env is None:
        load_dotenv()
        env = os.environ

    network = network or env.get("NETWORK") or DEFAULT_NETWORK
    preset = NETWORKS.get(network, {})

    rpc_url = env.get("RPC_URL") or preset.get("url")
    if not rpc_url:
        raise ConfigurationError(
            f"Unknown network '{network}' and no RPC_URL set. Known networks: {', '.join(NETWORKS)}"
        )

    raw_chain_id = env.get("CHAIN_ID")
    if raw_chain_id:
        chain_id = _parse_chain_id(raw_chain_id)
    elif "chainId" in preset:
        chain_id = preset["chainId"]
    else:
        raise ConfigurationError(f"Unknown network '{network}' and no CHAIN_ID set")

    private_key = (env.get("PRIVATE_KEY") or "").strip()
    if not private_key:
        raise ConfigurationError("PRIVATE_KEY not found in environment")
    if not _PRIVATE_KEY_RE.match(private_key):
        raise ConfigurationError("PRIVATE_KEY must be a 32-byte hex string")
    if not private_key.startswith("0x"):
        private_key = "0x" + private_key

    return DeployConfig(
        network=network,
        rpc_url=rpc_url,
        chain_id=chain_id,
        private_key=private_key,
        artifacts_dir=artifacts_dir or env.get("ARTIFACTS_DIR") or DEFAULT_ARTIFACTS_DIR,
        receipt_timeout=_parse_timeout(env.get("RECEIPT_TIMEOUT") or str(DEFAULT_RECEIPT_TIMEOUT)),
        poa=(env.get("POA_MIDDLEWARE") or "").strip().lower() in _TRUE_VALUES,
        deployment_file=deployment_file or env.get("DEPLOYMENT_FILE") or None,
    )
