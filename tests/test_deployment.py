from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from web3 import Web3

from identity_manager import deploy
from identity_manager.errors import TransactionFailed
from identity_manager.services.blockchain import IDENTITY_MANAGER_ABI
from identity_manager.services.deployment import (
    deploy_identity_manager,
    load_artifact,
    load_deployments,
)

DEPLOYER = Web3.to_checksum_address("0x" + "de" * 20)
DEPLOYED = Web3.to_checksum_address("0x" + "ee" * 20)
ARTIFACT = {"abi": IDENTITY_MANAGER_ABI, "bytecode": "0x6080604052"}


@pytest.fixture
def w3() -> MagicMock:
    w3 = MagicMock()
    w3.eth.chain_id = 1337
    w3.eth.contract.return_value.constructor.return_value.transact.return_value = b"\xab" * 32
    w3.eth.wait_for_transaction_receipt.return_value = {
        "status": 1,
        "contractAddress": DEPLOYED,
        "blockNumber": 7,
    }
    w3.eth.get_code.return_value = b"\x60\x80"
    return w3


def test_deploy_records_address(w3, tmp_path) -> None:
    deployments = tmp_path / "deployments.json"

    address = deploy_identity_manager(w3, ARTIFACT, DEPLOYER, deployments_file=deployments)

    assert address == DEPLOYED
    w3.eth.contract.return_value.constructor.assert_called_once_with()
    assert load_deployments(deployments) == {
        "1337": {"address": DEPLOYED, "tx_hash": "0x" + "ab" * 32, "block_number": 7}
    }


def test_deploy_once_per_network(w3, tmp_path) -> None:
    deployments = tmp_path / "deployments.json"
    deploy_identity_manager(w3, ARTIFACT, DEPLOYER, deployments_file=deployments)

    address = deploy_identity_manager(w3, ARTIFACT, DEPLOYER, deployments_file=deployments)

    assert address == DEPLOYED
    assert w3.eth.contract.return_value.constructor.call_count == 1


def test_redeploy_when_code_is_gone(w3, tmp_path) -> None:
    deployments = tmp_path / "deployments.json"
    deploy_identity_manager(w3, ARTIFACT, DEPLOYER, deployments_file=deployments)
    w3.eth.get_code.return_value = b""

    deploy_identity_manager(w3, ARTIFACT, DEPLOYER, deployments_file=deployments)

    assert w3.eth.contract.return_value.constructor.call_count == 2


def test_force_redeploy(w3, tmp_path) -> None:
    deployments = tmp_path / "deployments.json"
    deploy_identity_manager(w3, ARTIFACT, DEPLOYER, deployments_file=deployments)
    deploy_identity_manager(w3, ARTIFACT, DEPLOYER, deployments_file=deployments, force=True)

    assert w3.eth.contract.return_value.constructor.call_count == 2


def test_failed_deployment(w3, tmp_path) -> None:
    w3.eth.wait_for_transaction_receipt.return_value = {"status": 0, "contractAddress": None, "blockNumber": 7}
    deployments = tmp_path / "deployments.json"

    with pytest.raises(TransactionFailed):
        deploy_identity_manager(w3, ARTIFACT, DEPLOYER, deployments_file=deployments)
    assert not deployments.exists()


def test_signed_deployment(w3, tmp_path) -> None:
    w3.eth.send_raw_transaction.return_value = b"\xab" * 32

    deploy_identity_manager(
        w3, ARTIFACT, DEPLOYER, private_key="0x" + "01" * 32,
        deployments_file=tmp_path / "deployments.json",
    )

    w3.eth.account.sign_transaction.assert_called_once()
    w3.eth.contract.return_value.constructor.return_value.transact.assert_not_called()


def test_load_artifact(tmp_path) -> None:
    path = tmp_path / "IdentityManager.json"
    path.write_text(json.dumps(ARTIFACT), encoding="utf-8")
    assert load_artifact(path)["bytecode"] == ARTIFACT["bytecode"]

    path.write_text(json.dumps({"abi": []}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_artifact(path)


def test_cli_reports_missing_artifact(monkeypatch, tmp_path) -> None:
    fake_w3 = MagicMock()
    fake_w3.is_connected.return_value = True
    fake_w3.eth.accounts = [DEPLOYER]
    monkeypatch.setattr(deploy, "Web3", MagicMock(HTTPProvider=MagicMock(), return_value=fake_w3))
    monkeypatch.setattr(deploy.config, "PRIVATE_KEY", "")

    code = deploy.main(["--artifact", str(tmp_path / "missing.json"),
                        "--deployments", str(tmp_path / "d.json")])

    assert code == 1
