#!/usr/bin/env python3
"""
Tests for the GenomicDAO contract client
"""

import json
import os

import pytest
from unittest.mock import MagicMock, patch

from scripts.chain_client import DeployedContract
from scripts.config import DeployConfig
from scripts.errors import ConfigurationError, EventNotFound
from scripts.genomicdao_client import GenomicDAOClient, main

CONTROLLER_ADDRESS = '0x' + 'c' * 40
PCSP_ADDRESS = '0x' + 'b' * 40
USER = '0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed'
TX_HASH = '0x' + 'a' * 64


def make_handle(name, address):
    return DeployedContract(name=name, address=address, tx_hash='', contract=None)


def upload_event(doc_id, session_id):
    return {'event': 'UploadData', 'args': {'docId': doc_id, 'sessionId': session_id}}


def write_record(tmp_path, contracts, chain_id=31337):
    path = os.path.join(str(tmp_path), 'deployment.json')
    with open(path, 'w') as f:
        json.dump({'network': 'localhost', 'chainId': chain_id, 'contracts': contracts}, f)
    return path


class TestGenomicDAOClient:
    """Test class for Controller and PCSP calls"""

    def setup_method(self):
        self.chain = MagicMock()
        self.chain.transact.return_value = TX_HASH
        self.controller = make_handle('Controller', CONTROLLER_ADDRESS)
        self.pcsp = make_handle('PostCovidStrokePrevention', PCSP_ADDRESS)
        self.dao = GenomicDAOClient(self.chain, self.controller, self.pcsp)

    def test_upload_data(self):
        assert self.dao.upload_data('doc-1') == TX_HASH
        self.chain.transact.assert_called_once_with(self.controller, 'uploadData', 'doc-1', step='uploadData doc-1')

    def test_upload_data_empty_doc_id(self):
        with pytest.raises(ValueError, match="doc_id"):
            self.dao.upload_data('')
        self.chain.transact.assert_not_called()

    def test_find_upload_session_matches_doc_id(self):
        self.chain.get_events.return_value = [
            upload_event('doc-1', 1),
            upload_event('doc-2', 2),
        ]

        assert self.dao.find_upload_session('doc-2') == 2
        self.chain.get_events.assert_called_once_with(self.controller, 'UploadData', 10)

    def test_find_upload_session_prefers_latest(self):
        self.chain.get_events.return_value = [upload_event('doc-1', 1), upload_event('doc-1', 4)]
        assert self.dao.find_upload_session('doc-1', lookback_blocks=50) == 4

    def test_find_upload_session_not_found(self):
        self.chain.get_events.return_value = [upload_event('other', 1)]
        with pytest.raises(EventNotFound, match="doc-1"):
            self.dao.find_upload_session('doc-1')

    def test_upload_returns_session(self):
        self.chain.get_events.return_value = [upload_event('doc-1', 7)]
        assert self.dao.upload('doc-1') == 7
        self.chain.transact.assert_called_once()

    def test_confirm(self):
        assert self.dao.confirm('doc-1', 'hash', 'proof', 7, 3) == TX_HASH
        self.chain.transact.assert_called_once_with(
            self.controller, 'confirm', 'doc-1', 'hash', 'proof', 7, 3, step='confirm session 7',
        )

    @pytest.mark.parametrize('risk_score', [-1, 256])
    def test_confirm_risk_score_out_of_range(self, risk_score):
        with pytest.raises(ValueError, match="risk_score"):
            self.dao.confirm('doc-1', 'hash', 'proof', 7, risk_score)
        self.chain.transact.assert_not_called()

    def test_get_session(self):
        self.chain.call.return_value = (7, USER, 'proof', True)
        assert self.dao.get_session(7) == {'id': 7, 'user': USER, 'proof': 'proof', 'confirmed': True}
        self.chain.call.assert_called_once_with(self.controller, 'getSession', 7)

    def test_get_doc(self):
        self.chain.call.return_value = ('doc-1', 'hash')
        assert self.dao.get_doc('doc-1') == {'id': 'doc-1', 'hashContent': 'hash'}

    def test_pcsp_balance_checksums_address(self):
        self.chain.call.return_value = 500
        assert self.dao.pcsp_balance(USER.lower()) == 500
        self.chain.call.assert_called_once_with(self.pcsp, 'balanceOf', USER)

    def test_pcsp_balance_invalid_address(self):
        with pytest.raises(ConfigurationError, match="Invalid address"):
            self.dao.pcsp_balance('0x1234')
        self.chain.call.assert_not_called()


class TestFromDeploymentRecord:
    """Test class for binding to a deployment record"""

    def setup_method(self):
        self.chain = MagicMock()
        self.chain.config = DeployConfig(network='localhost', rpc_url='http://127.0.0.1:8545',
                                         chain_id=31337, private_key='0x' + '1' * 64)
        self.chain.contract_at.side_effect = make_handle

    def test_binds_controller_and_pcsp(self, tmp_path):
        path = write_record(tmp_path, {'nft': '0x' + '1' * 40, 'pcsp': PCSP_ADDRESS, 'controller': CONTROLLER_ADDRESS})

        dao = GenomicDAOClient.from_deployment_record(self.chain, path)

        assert dao.controller.address == CONTROLLER_ADDRESS
        assert dao.pcsp.address == PCSP_ADDRESS
        self.chain.contract_at.assert_any_call('Controller', CONTROLLER_ADDRESS)
        self.chain.contract_at.assert_any_call('PostCovidStrokePrevention', PCSP_ADDRESS)

    def test_missing_record(self, tmp_path):
        with pytest.raises(ConfigurationError, match="deploy contracts first"):
            GenomicDAOClient.from_deployment_record(self.chain, os.path.join(str(tmp_path), 'none.json'))

    def test_missing_controller(self, tmp_path):
        path = write_record(tmp_path, {'pcsp': PCSP_ADDRESS})
        with pytest.raises(ConfigurationError, match="controller"):
            GenomicDAOClient.from_deployment_record(self.chain, path)

    def test_other_chain(self, tmp_path):
        path = write_record(tmp_path, {'pcsp': PCSP_ADDRESS, 'controller': CONTROLLER_ADDRESS}, chain_id=11155420)
        with pytest.raises(ConfigurationError, match="chain 11155420"):
            GenomicDAOClient.from_deployment_record(self.chain, path)


class TestMain:
    """Test class for the command-line entry point"""

    @patch('scripts.genomicdao_client.setup_logging')
    @patch('scripts.genomicdao_client.ChainClient')
    @patch('scripts.config.load_dotenv')
    def test_balance_command(self, mock_dotenv, mock_client_cls, mock_logging, tmp_path):
        chain = mock_client_cls.connect.return_value
        chain.config = DeployConfig(network='localhost', rpc_url='http://127.0.0.1:8545',
                                    chain_id=31337, private_key='0x' + '1' * 64)
        chain.contract_at.side_effect = make_handle
        chain.call.return_value = 42
        path = write_record(tmp_path, {'pcsp': PCSP_ADDRESS, 'controller': CONTROLLER_ADDRESS})
        env = {'NETWORK': 'localhost', 'PRIVATE_KEY': '1' * 64}

        with patch.dict(os.environ, env, clear=True):
            assert main(['--deployment', path, 'balance', USER]) == 0

        chain.resolve_signer.assert_called_once()
        assert chain.call.call_args[0][1:] == ('balanceOf', USER)

    @patch('scripts.genomicdao_client.setup_logging')
    @patch('scripts.genomicdao_client.ChainClient')
    @patch('scripts.config.load_dotenv')
    def test_missing_record_exits_nonzero(self, mock_dotenv, mock_client_cls, mock_logging, tmp_path):
        mock_client_cls.connect.return_value.config = DeployConfig(
            network='localhost', rpc_url='http://127.0.0.1:8545', chain_id=31337, private_key='0x' + '1' * 64)
        env = {'NETWORK': 'localhost', 'PRIVATE_KEY': '1' * 64}

        with patch.dict(os.environ, env, clear=True):
            assert main(['--deployment', os.path.join(str(tmp_path), 'none.json'), 'session', '1']) == 1


if __name__ == "__main__":
    pytest.main([__file__])
