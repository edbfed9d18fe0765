#!/usr/bin/env python3
"""
GenomicDAO contract client
Upload/confirm sessions on the Controller and PCSP balance lookups,
using the addresses from a deployment record
"""

import argparse
import logging
import sys
from typing import Any, Dict, Optional, Sequence

from web3 import Web3

from contracts import CONTROLLER, PCSP_TOKEN

from .chain_client import ChainClient, DeployedContract
from .config import load_config
from .deploy import load_deployment_record, setup_logging
from .errors import ConfigurationError, DeploymentError, EventNotFound

logger = logging.getLogger(__name__)

DEFAULT_DEPLOYMENT_FILE = 'deployment.json'
# Blocks searched backwards for the UploadData event
DEFAULT_LOOKBACK_BLOCKS = 10
MAX_RISK_SCORE = 255


class GenomicDAOClient:
    def __init__(self, client: Any, controller: DeployedContract, pcsp: DeployedContract):
        self.client = client
        self.controller = controller
        self.pcsp = pcsp

    @classmethod
    def from_deployment_record(cls, client: ChainClient, path: str) -> 'GenomicDAOClient':
        """Bind to the Controller and PCSP addresses of a previous deployment"""
        record = load_deployment_record(path)
        chain_id = record.get('chainId')
        if chain_id is not None and chain_id != client.config.chain_id:
            raise ConfigurationError(
                f"Deployment record {path} is for chain {chain_id}, connected to {client.config.chain_id}"
            )

        contracts = record['contracts']
        missing = [label for label in ('controller', 'pcsp') if not contracts.get(label)]
        if missing:
            raise ConfigurationError(f"Deployment record {path} is missing addresses for: {missing}")

        controller = client.contract_at(CONTROLLER, contracts['controller'])
        pcsp = client.contract_at(PCSP_TOKEN, contracts['pcsp'])
        logger.info(f"Using Controller at {controller.address}, PCSP at {pcsp.address}")
        return cls(client, controller, pcsp)

    def upload_data(self, doc_id: str) -> str:
        """Open an upload session for doc_id; returns the confirmed tx hash"""
        if not doc_id:
            raise ValueError("doc_id must not be empty")
        tx_hash = self.client.transact(self.controller, 'uploadData', doc_id, step=f"uploadData {doc_id}")
        logger.info(f"Upload data transaction sent: {tx_hash}")
        return tx_hash

    def find_upload_session(self, doc_id: str, lookback_blocks: int = DEFAULT_LOOKBACK_BLOCKS) -> int:
        """
        Session id from the most recent UploadData event for doc_id.

        Raises:
            EventNotFound: if no event for doc_id was emitted in the last lookback_blocks blocks
        """
        events = self.client.get_events(self.controller, 'UploadData', lookback_blocks)
        for event in reversed(events):
            args = event['args']
            if args['docId'] == doc_id:
                logger.info(f"Matching UploadData event found: docId={doc_id} sessionId={args['sessionId']}")
                return args['sessionId']
        raise EventNotFound(f"No UploadData event for docId {doc_id} in the last {lookback_blocks} blocks")

    def upload(self, doc_id: str, lookback_blocks: int = DEFAULT_LOOKBACK_BLOCKS) -> int:
        """upload_data followed by the session lookup"""
        self.upload_data(doc_id)
        return self.find_upload_session(doc_id, lookback_blocks)

    def confirm(self, doc_id: str, content_hash: str, proof: str, session_id: int, risk_score: int) -> str:
        """Confirm an upload session; the Controller mints the NFT and PCSP reward"""
        if not 0 <= risk_score <= MAX_RISK_SCORE:
            raise ValueError(f"risk_score must be between 0 and {MAX_RISK_SCORE}, got {risk_score}")
        if session_id < 0:
            raise ValueError(f"session_id must be non-negative, got {session_id}")
        tx_hash = self.client.transact(
            self.controller, 'confirm', doc_id, content_hash, proof, session_id, risk_score,
            step=f"confirm session {session_id}",
        )
        logger.info(f"Confirm transaction sent: {tx_hash}")
        return tx_hash

    def get_session(self, session_id: int) -> Dict[str, Any]:
        session_key, user, proof, confirmed = self.client.call(self.controller, 'getSession', session_id)
        return {'id': session_key, 'user': user, 'proof': proof, 'confirmed': confirmed}

    def get_doc(self, doc_id: str) -> Dict[str, Any]:
        doc_key, content_hash = self.client.call(self.controller, 'getDoc', doc_id)
        return {'id': doc_key, 'hashContent': content_hash}

    def pcsp_balance(self, address: str) -> int:
        try:
            address = Web3.to_checksum_address(address)
        except ValueError as e:
            raise ConfigurationError(f"Invalid address {address!r}: {e}") from e
        return self.client.call(self.pcsp, 'balanceOf', address)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interact with deployed GenomicDAO contracts")
    parser.add_argument('--network', help="Network name (default: $NETWORK or optimism-sepolia)")
    parser.add_argument('--artifacts', help="Hardhat artifacts directory (default: $ARTIFACTS_DIR or ./artifacts)")
    parser.add_argument('--deployment', help="Deployment record (default: $DEPLOYMENT_FILE or deployment.json)")
    sub = parser.add_subparsers(dest='command', required=True)

    upload = sub.add_parser('upload', help="Upload a document id and print its session id")
    upload.add_argument('doc_id')

    confirm = sub.add_parser('confirm', help="Confirm an upload session")
    confirm.add_argument('doc_id')
    confirm.add_argument('content_hash')
    confirm.add_argument('proof')
    confirm.add_argument('session_id', type=int)
    confirm.add_argument('risk_score', type=int)

    session = sub.add_parser('session', help="Show an upload session")
    session.add_argument('session_id', type=int)

    balance = sub.add_parser('balance', help="PCSP balance of an address")
    balance.add_argument('address')
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging('genomicdao_client.log')

    try:
        config = load_config(network=args.network, artifacts_dir=args.artifacts, deployment_file=args.deployment)
        client = ChainClient.connect(config)
        client.resolve_signer()
        dao = GenomicDAOClient.from_deployment_record(client, config.deployment_file or DEFAULT_DEPLOYMENT_FILE)

        if args.command == 'upload':
            session_id = dao.upload(args.doc_id)
            logger.info(f"Session ID: {session_id}")
        elif args.command == 'confirm':
            dao.confirm(args.doc_id, args.content_hash, args.proof, args.session_id, args.risk_score)
        elif args.command == 'session':
            logger.info(f"Session {args.session_id}: {dao.get_session(args.session_id)}")
        elif args.command == 'balance':
            logger.info(f"PCSP balance of {args.address}: {dao.pcsp_balance(args.address)}")

    except (DeploymentError, ValueError) as e:
        logger.error(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
