#!/usr/bin/env python3
"""
Tests for loading compiled contract artifacts
"""

import json

import pytest

from contracts import ArtifactError, artifact_path, load_artifact


def write_artifact(root, name, payload):
    directory = root / 'contracts' / f'{name}.sol'
    directory.mkdir(parents=True)
    path = directory / f'{name}.json'
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload))
    return path


class TestLoadArtifact:
    """Test class for load_artifact"""

    def test_artifact_path_layout(self):
        path = artifact_path('Controller', 'artifacts')
        assert path.replace('\\', '/') == 'artifacts/contracts/Controller.sol/Controller.json'

    def test_load_artifact(self, tmp_path):
        abi = [{'type': 'function', 'name': 'transferOwnership'}]
        write_artifact(tmp_path, 'GeneNFT', {'contractName': 'GeneNFT', 'abi': abi, 'bytecode': '0x6080'})

        artifact = load_artifact('GeneNFT', str(tmp_path))

        assert artifact.name == 'GeneNFT'
        assert artifact.abi == abi
        assert artifact.bytecode == '0x6080'

    def test_missing_artifact(self, tmp_path):
        with pytest.raises(ArtifactError, match="not found"):
            load_artifact('GeneNFT', str(tmp_path))

    def test_invalid_json(self, tmp_path):
        write_artifact(tmp_path, 'Controller', '{not json')
        with pytest.raises(ArtifactError, match="not valid JSON"):
            load_artifact('Controller', str(tmp_path))

    def test_missing_abi(self, tmp_path):
        write_artifact(tmp_path, 'Controller', {'bytecode': '0x6080'})
        with pytest.raises(ArtifactError, match="no ABI"):
            load_artifact('Controller', str(tmp_path))

    @pytest.mark.parametrize('bytecode', ['', '0x'])
    def test_empty_bytecode(self, tmp_path, bytecode):
        write_artifact(tmp_path, 'IGeneNFT', {'abi': [], 'bytecode': bytecode})
        with pytest.raises(ArtifactError, match="no bytecode"):
            load_artifact('IGeneNFT', str(tmp_path))


if __name__ == "__main__":
    pytest.main([__file__])
