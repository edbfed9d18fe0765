#!/usr/bin/env python3
"""
GenomicDAO deployment script
Deploys GeneNFT, PostCovidStrokePrevention and Controller, then hands
ownership of the two tokens to the Controller
"""

import argparse
import json
import logging
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from web3 import Web3

from contracts import CONTROLLER, GENE_NFT, PCSP_TOKEN

from .chain_client import ChainClient, DeployedContract
from .config import DeployConfig, load_config
from .errors import ConfigurationError, DeploymentError, TransactionFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeploymentStep:
    """
    One contract creation.

    constructor_args are labels of earlier steps; their addresses are passed
    to the constructor in the given order.
    """
    label: str
    contract: str
    constructor_args: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OwnershipTransfer:
    target: str
    new_owner: str


class DeploymentPlan:
    """Ordered deployment steps followed by ownership transfers"""

    def __init__(self, steps: Sequence[DeploymentStep], transfers: Sequence[OwnershipTransfer] = ()):
        self.steps = tuple(steps)
        self.transfers = tuple(transfers)
        self._validate()

    def _validate(self):
        seen = set()
        for step in self.steps:
            if step.label in seen:
                raise ConfigurationError(f"Duplicate step label '{step.label}'")
            for dep in step.constructor_args:
                if dep not in seen:
                    raise ConfigurationError(
                        f"Step '{step.label}' uses '{dep}' before it is deployed"
                    )
            seen.add(step.label)

        for transfer in self.transfers:
            for label in (transfer.target, transfer.new_owner):
                if label not in seen:
                    raise ConfigurationError(f"Ownership transfer references unknown step '{label}'")
            if transfer.target == transfer.new_owner:
                raise ConfigurationError(f"Contract '{transfer.target}' cannot own itself")


GENOMICDAO_PLAN = DeploymentPlan(
    steps=[
        DeploymentStep('nft', GENE_NFT),
        DeploymentStep('pcsp', PCSP_TOKEN),
        DeploymentStep('controller', CONTROLLER, ('nft', 'pcsp')),
    ],
    transfers=[
        OwnershipTransfer('nft', 'controller'),
        OwnershipTransfer('pcsp', 'controller'),
    ],
)


@dataclass
class DeploymentResult:
    deployer: str
    contracts: Dict[str, DeployedContract] = field(default_factory=dict)
    transfers: List[Dict[str, str]] = field(default_factory=list)

    @property
    def addresses(self) -> Dict[str, str]:
        return {label: handle.address for label, handle in self.contracts.items()}


class DeploymentOrchestrator:
    """
    Runs a DeploymentPlan strictly in order against a chain client.

    Every step waits for confirmation before the next one starts. The first
    failure propagates and nothing after it is submitted; confirmed steps stay
    on chain, so a rerun deploys fresh contracts.
    """

    def __init__(self, client: Any, plan: DeploymentPlan = GENOMICDAO_PLAN, verify_ownership: bool = True):
        self.client = client
        self.plan = plan
        self.verify_ownership = verify_ownership

    def run(self) -> DeploymentResult:
        deployer = self.client.resolve_signer()
        logger.info(f"Deploying contracts with the account: {deployer}")

        balance = self.client.get_balance(deployer)
        logger.info(f"Account balance: {balance} wei ({Web3.from_wei(balance, 'ether')} ETH)")

        result = DeploymentResult(deployer=deployer)

        # Every artifact must load before anything goes on chain
        factories = {step.label: self.client.get_contract_factory(step.contract) for step in self.plan.steps}

        for step in self.plan.steps:
            args = [result.contracts[dep].address for dep in step.constructor_args]
            factory = factories[step.label]
            handle = self.client.deploy(factory, *args, step=f"deploy {step.label} ({step.contract})")
            result.contracts[step.label] = handle
            logger.info(f"{step.contract} deployed at address: {handle.address}")

        for transfer in self.plan.transfers:
            target = result.contracts[transfer.target]
            new_owner = result.contracts[transfer.new_owner].address
            tx_hash = self.client.transact(
                target, 'transferOwnership', new_owner,
                step=f"transferOwnership {transfer.target} -> {transfer.new_owner}",
            )
            result.transfers.append({'contract': transfer.target, 'newOwner': transfer.new_owner, 'txHash': tx_hash})
            logger.info(f"Ownership of {target.name} transferred to {transfer.new_owner} ({new_owner})")

        if self.verify_ownership:
            self._verify_ownership(result)

        logger.info("Deployment completed successfully")
        return result

    def _verify_ownership(self, result: DeploymentResult):
        for transfer in self.plan.transfers:
            target = result.contracts[transfer.target]
            expected = result.contracts[transfer.new_owner].address
            owner = self.client.call(target, 'owner')
            if str(owner).lower() != expected.lower():
                raise TransactionFailure(
                    f"verify owner of {transfer.target}",
                    f"owner is {owner}, expected {expected}",
                )
        logger.info("Ownership verified on chain")


def write_deployment_record(result: DeploymentResult, path: str, config: DeployConfig) -> Dict[str, Any]:
    """Write deployed addresses to a JSON file, read back by load_deployment_record"""
    record = {
        'network': config.network,
        'chainId': config.chain_id,
        'contracts': result.addresses,
        'roles': {'deployer': result.deployer},
        'transfers': result.transfers,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(record, f, indent=2)
    logger.info(f"Deployment record written to {path}")
    return record


def load_deployment_record(path: str) -> Dict[str, Any]:
    """Read a record written by write_deployment_record"""
    try:
        with open(path, 'r') as f:
            record = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Deployment record not found at {path}. Please deploy contracts first.")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Deployment record at {path} is not valid JSON: {e}")

    if not isinstance(record.get('contracts'), dict):
        raise ConfigurationError(f"Deployment record at {path} has no contracts section")
    return record


def setup_logging(log_file: str = 'deployment.log'):
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deploy the GenomicDAO contracts")
    parser.add_argument('--network', help="Network name (default: $NETWORK or optimism-sepolia)")
    parser.add_argument('--artifacts', help="Hardhat artifacts directory (default: $ARTIFACTS_DIR or ./artifacts)")
    parser.add_argument('--output', help="Write deployed addresses to this JSON file")
    parser.add_argument('--no-verify', action='store_true', help="Skip the on-chain owner() check")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging()

    try:
        config = load_config(network=args.network, artifacts_dir=args.artifacts, deployment_file=args.output)
        logger.info(f"Deployment config: {config.redacted()}")

        client = ChainClient.connect(config)
        orchestrator = DeploymentOrchestrator(client, verify_ownership=not args.no_verify)
        result = orchestrator.run()

        for label, address in result.addresses.items():
            logger.info(f"{label}: {address}")
        if config.deployment_file:
            write_deployment_record(result, config.deployment_file, config)

    except DeploymentError as e:
        logger.error(f"Error during deployment: {e}")
        return 1
    except OSError as e:
        # Contracts are already on chain; only the record is missing
        logger.error(f"Deployment succeeded but the record could not be written: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
