"""
Deployment Scripts
==================

Scripts for deploying and wiring up the GenomicDAO contracts.

Structure:
- config: Network and signer configuration from the environment
- chain_client: web3.py client used to deploy and call contracts
- deploy: Deployment plan and orchestrator (GeneNFT, PCSP, Controller)
- genomicdao_client: Upload/confirm sessions and PCSP balances on a deployed system
"""

__version__ = "1.0.0"
__author__ = "GenomicDAO Team"
