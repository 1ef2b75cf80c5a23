"""
Identity Manager Deployment Service
Installs the compiled IdentityManager contract onto a network, once per
chain id, and records where it lives.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from web3 import Web3

from identity_manager.config import config
from identity_manager.errors import TransactionFailed

logger = logging.getLogger(__name__)


def load_artifact(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a compiled contract artifact (truffle/hardhat JSON with abi + bytecode)."""
    with open(path, encoding="utf-8") as f:
        artifact = json.load(f)

    if "abi" not in artifact or not artifact.get("bytecode"):
        raise ValueError(f"Artifact {path} has no abi/bytecode")
    return artifact


def load_deployments(path: Union[str, Path]) -> Dict[str, Dict[str, Any]]:
    """Read the deployment record file, {chain_id: {address, tx_hash, block_number}}."""
    path = Path(path)
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def save_deployments(path: Union[str, Path], deployments: Dict[str, Dict[str, Any]]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(deployments, f, indent=2, sort_keys=True)


def find_existing_deployment(w3: Web3, deployments_file: Union[str, Path]) -> Optional[str]:
    """Address already recorded for this chain, if the network still has code there."""
    chain_id = str(w3.eth.chain_id)
    entry = load_deployments(deployments_file).get(chain_id)
    if not entry:
        return None

    address = Web3.to_checksum_address(entry["address"])
    if len(w3.eth.get_code(address)) == 0:
        logger.warning("Recorded IdentityManager %s on chain %s has no code", address, chain_id)
        return None
    return address


def deploy_identity_manager(
    w3: Web3,
    artifact: Dict[str, Any],
    deployer: str,
    private_key: Optional[str] = None,
    deployments_file: Union[str, Path] = config.DEPLOYMENTS_FILE,
    force: bool = False,
) -> str:
    """
    Deploy IdentityManager (no constructor arguments) unless already deployed.

    Args:
        w3: Web3 connection to the target network
        artifact: Loaded contract artifact
        deployer: Sending account
        private_key: Signing key for the deployer; None uses a node-managed account
        deployments_file: JSON file recording deployments per chain id
        force: Deploy even if this chain already has a recorded instance

    Returns:
        Checksummed contract address
    """
    if not force:
        existing = find_existing_deployment(w3, deployments_file)
        if existing:
            logger.info("IdentityManager already deployed at %s", existing)
            return existing

    deployer = Web3.to_checksum_address(deployer)
    IdentityManager = w3.eth.contract(abi=artifact["abi"], bytecode=artifact["bytecode"])
    constructor = IdentityManager.constructor()

    if private_key:
        tx = constructor.build_transaction({
            "from": deployer,
            "nonce": w3.eth.get_transaction_count(deployer),
            "gas": config.GAS_LIMIT,
            "gasPrice": w3.eth.gas_price,
            "chainId": w3.eth.chain_id,
        })
        signed_tx = w3.eth.account.sign_transaction(tx, private_key)
        tx_hash = w3.eth.send_raw_transaction(signed_tx.raw_transaction)
    else:
        tx_hash = constructor.transact({"from": deployer, "gas": config.GAS_LIMIT})

    tx_hex = Web3.to_hex(tx_hash)
    logger.info("Deploy in progress... tx %s", tx_hex)

    receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=config.TX_TIMEOUT)
    if receipt["status"] != 1 or not receipt.get("contractAddress"):
        raise TransactionFailed(f"IdentityManager deployment failed: {tx_hex}", {"tx_hash": tx_hex})

    address = Web3.to_checksum_address(receipt["contractAddress"])

    deployments = load_deployments(deployments_file)
    deployments[str(w3.eth.chain_id)] = {
        "address": address,
        "tx_hash": tx_hex,
        "block_number": receipt["blockNumber"],
    }
    save_deployments(deployments_file, deployments)

    logger.info("IdentityManager deployed to %s", address)
    return address
