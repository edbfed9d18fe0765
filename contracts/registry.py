import json
import os
from dataclasses import dataclass
from typing import Any, Dict, List

GENE_NFT = "GeneNFT"
PCSP_TOKEN = "PostCovidStrokePrevention"
CONTROLLER = "Controller"


class ArtifactError(Exception):
    """Compiled artifact is missing or unusable"""


@dataclass(frozen=True)
class Artifact:
    """ABI and creation bytecode of a compiled contract"""
    name: str
    abi: List[Dict[str, Any]]
    bytecode: str


def artifact_path(name: str, artifacts_dir: str) -> str:
    """Hardhat layout: <artifacts>/contracts/<Name>.sol/<Name>.json"""
    return os.path.join(artifacts_dir, 'contracts', f'{name}.sol', f'{name}.json')


def load_artifact(name: str, artifacts_dir: str) -> Artifact:
    """Loads a contract ABI and bytecode from its JSON artifact."""
    path = artifact_path(name, artifacts_dir)
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ArtifactError(f"Artifact for {name} not found at {path}. Compile the contracts first.")
    except json.JSONDecodeError as e:
        raise ArtifactError(f"Artifact for {name} at {path} is not valid JSON: {e}")

    abi = data.get('abi')
    bytecode = data.get('bytecode') or ''
    if not isinstance(abi, list):
        raise ArtifactError(f"Artifact for {name} has no ABI")
    # Interfaces and abstract contracts compile to empty bytecode
    if bytecode in ('', '0x'):
        raise ArtifactError(f"Artifact for {name} has no bytecode, it cannot be deployed")

    return Artifact(name=name, abi=abi, bytecode=bytecode)
