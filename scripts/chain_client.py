#!/usr/bin/env python3
"""
web3.py chain client used by the deployment orchestrator
Signs with the deployer key, submits transactions and waits for receipts
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional

import requests
from web3 import Web3
from web3.exceptions import (
    BadFunctionCallOutput,
    ContractLogicError,
    InvalidAddress,
    MismatchedABI,
    TimeExhausted,
    Web3RPCError,
    Web3TypeError,
    Web3ValidationError,
)
from web3.middleware import ExtraDataToPOAMiddleware

from contracts import ArtifactError, load_artifact

from .config import DeployConfig
from .errors import ConfigurationError, ConnectivityError, DeploymentError, TransactionFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractFactory:
    """Undeployed contract class built from a compiled artifact"""
    name: str
    contract: Any


@dataclass(frozen=True)
class DeployedContract:
    """Handle to a confirmed contract deployment"""
    name: str
    address: str
    tx_hash: str
    contract: Any


class ChainClient:
    def __init__(self, w3: Web3, config: DeployConfig):
        self.w3 = w3
        self.config = config
        self.account: Optional[Any] = None

    @classmethod
    def connect(cls, config: DeployConfig) -> 'ChainClient':
        """Connect to the configured RPC endpoint and check it serves the expected chain"""
        w3 = Web3(Web3.HTTPProvider(config.rpc_url))
        if config.poa:
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        if not w3.is_connected():
            logger.error(f"Could not connect to RPC URL: {config.rpc_url}")
            raise ConnectivityError(f"Could not connect to RPC URL: {config.rpc_url}")

        client = cls(w3, config)
        with client._translate_errors("chain id check"):
            node_chain_id = w3.eth.chain_id
        if node_chain_id != config.chain_id:
            raise ConfigurationError(
                f"RPC URL {config.rpc_url} serves chain {node_chain_id}, expected {config.chain_id} ({config.network})"
            )

        logger.info(f"Connected to {config.network} (chain {node_chain_id}) at {config.rpc_url}")
        return client

    @contextmanager
    def _translate_errors(self, step: str) -> Iterator[None]:
        try:
            yield
        except DeploymentError:
            raise
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            logger.error(f"{step}: RPC endpoint unreachable: {e}")
            raise ConnectivityError(f"{step}: RPC endpoint {self.config.rpc_url} unreachable: {e}") from e
        except ContractLogicError as e:
            logger.error(f"{step}: execution reverted: {e}")
            raise TransactionFailure(step, f"execution reverted: {e}") from e
        except TimeExhausted as e:
            logger.error(f"{step}: not confirmed within {self.config.receipt_timeout}s")
            raise TransactionFailure(step, f"not confirmed within {self.config.receipt_timeout}s") from e
        except (Web3ValidationError, InvalidAddress, MismatchedABI, Web3TypeError) as e:
            # Raised by web3 before anything is sent
            logger.error(f"{step}: invalid input: {e}")
            raise ConfigurationError(f"{step}: invalid input: {e}") from e
        except (Web3RPCError, BadFunctionCallOutput, ValueError) as e:
            # Node-side rejections (insufficient funds, nonce too low, ...)
            logger.error(f"{step}: rejected: {e}")
            raise TransactionFailure(step, f"rejected: {e}") from e

    def resolve_signer(self) -> str:
        """Load the deployer account from the configured private key and return its address"""
        try:
            self.account = self.w3.eth.account.from_key(self.config.private_key)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"PRIVATE_KEY is not a valid signing key: {e}") from e
        return self.account.address

    def get_balance(self, address: str) -> int:
        with self._translate_errors("balance query"):
            return self.w3.eth.get_balance(address)

    def get_contract_factory(self, name: str) -> ContractFactory:
        try:
            artifact = load_artifact(name, self.config.artifacts_dir)
        except ArtifactError as e:
            raise ConfigurationError(str(e)) from e
        return ContractFactory(
            name=name,
            contract=self.w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode),
        )

    def contract_at(self, name: str, address: str) -> DeployedContract:
        """Handle to an already deployed contract, e.g. from a deployment record"""
        try:
            artifact = load_artifact(name, self.config.artifacts_dir)
        except ArtifactError as e:
            raise ConfigurationError(str(e)) from e
        try:
            address = self.w3.to_checksum_address(address)
        except ValueError as e:
            raise ConfigurationError(f"Invalid {name} address {address!r}: {e}") from e
        with self._translate_errors(f"load {name}"):
            contract = self.w3.eth.contract(address=address, abi=artifact.abi)
        return DeployedContract(name=name, address=address, tx_hash='', contract=contract)

    def deploy(self, factory: ContractFactory, *args: Any, step: Optional[str] = None) -> DeployedContract:
        """Deploy a contract and wait until the creation transaction is confirmed"""
        step = step or f"deploy {factory.name}"
        with self._translate_errors(step):
            tx = factory.contract.constructor(*args).build_transaction(self._tx_params())
            tx_hash, receipt = self._send(tx, step)

        address = receipt.get('contractAddress')
        if not address:
            raise TransactionFailure(step, "receipt has no contract address", tx_hash)

        return DeployedContract(
            name=factory.name,
            address=address,
            tx_hash=tx_hash,
            contract=self.w3.eth.contract(address=address, abi=factory.contract.abi),
        )

    def transact(self, handle: DeployedContract, method: str, *args: Any, step: Optional[str] = None) -> str:
        """Call a state-changing method, wait for confirmation, return the tx hash"""
        step = step or f"{handle.name}.{method}"
        with self._translate_errors(step):
            fn = getattr(handle.contract.functions, method)(*args)
            tx = fn.build_transaction(self._tx_params())
            tx_hash, _ = self._send(tx, step)
        return tx_hash

    def call(self, handle: DeployedContract, method: str, *args: Any) -> Any:
        """Read-only method call"""
        with self._translate_errors(f"{handle.name}.{method}"):
            return getattr(handle.contract.functions, method)(*args).call()

    def get_events(self, handle: DeployedContract, event: str, lookback_blocks: int) -> List[Any]:
        """Decoded logs of one event emitted in the last lookback_blocks blocks"""
        with self._translate_errors(f"{handle.name}.{event} logs"):
            latest = self.w3.eth.block_number
            from_block = max(latest - lookback_blocks, 0)
            return list(getattr(handle.contract.events, event)().get_logs(from_block=from_block))

    def _tx_params(self) -> dict:
        if self.account is None:
            raise ConfigurationError("Deployer account not resolved")
        return {
            'from': self.account.address,
            'nonce': self.w3.eth.get_transaction_count(self.account.address, 'pending'),
            'chainId': self.config.chain_id,
            'gasPrice': self.w3.eth.gas_price,
        }

    def _send(self, tx: dict, step: str):
        signed_tx = self.w3.eth.account.sign_transaction(tx, self.config.private_key)
        tx_hash = self.w3.to_hex(self.w3.eth.send_raw_transaction(signed_tx.raw_transaction))
        logger.info(f"{step}: transaction sent {tx_hash}")

        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.config.receipt_timeout)
        if receipt['status'] != 1:
            logger.error(f"{step}: transaction {tx_hash} reverted in block {receipt['blockNumber']}")
            raise TransactionFailure(step, "transaction reverted", tx_hash)

        logger.info(f"{step}: confirmed in block {receipt['blockNumber']}")
        return tx_hash, receipt
