"""
GenomicDAO Contracts
====================

Registry of the contracts deployed by the GenomicDAO scripts:
- GeneNFT: NFT minted for each confirmed genomic data upload
- PostCovidStrokePrevention: PCSP reward token
- Controller: Owns GeneNFT and PCSP, drives upload/confirm sessions

Solidity sources are compiled with hardhat; the Python side only reads the
compiled artifacts.
"""

from .registry import (
    CONTROLLER,
    GENE_NFT,
    PCSP_TOKEN,
    Artifact,
    ArtifactError,
    artifact_path,
    load_artifact,
)

__all__ = [
    'CONTROLLER',
    'GENE_NFT',
    'PCSP_TOKEN',
    'Artifact',
    'ArtifactError',
    'artifact_path',
    'load_artifact',
]
