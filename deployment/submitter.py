"""
Contract deployment over web3

The only side-effecting part of a run: builds the contract-creation
transaction, signs and sends it, and blocks until the receipt arrives.
"""

import logging
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from .artifacts import load_artifact
from .errors import DeploymentError, SubmitFailure

logger = logging.getLogger(__name__)


def connect(rpc_url: str) -> Web3:
    """Open a Web3 connection, failing if the node does not answer"""
    w3 = Web3(Web3.HTTPProvider(rpc_url))
    # Polygon and other PoA chains carry long extraData headers
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    if not w3.is_connected():
        raise DeploymentError(f"Could not connect to RPC URL: {rpc_url}")
    logger.info(f"Connected to blockchain at {rpc_url}")
    return w3


def resolve_deployer(w3: Web3, account: Optional[LocalAccount]) -> str:
    """
    The deployer address: the configured account, or the node's first
    unlocked account when none is configured (local nodes).
    """
    if account is not None:
        return account.address
    node_accounts = w3.eth.accounts
    if not node_accounts:
        raise DeploymentError("No deployer account configured and the node exposes no accounts")
    return node_accounts[0]


class Web3Submitter:
    """Deploys compiled contracts from a single deployer account"""

    def __init__(self, w3: Web3, artifacts_dir: Union[str, Path], account: Optional[LocalAccount] = None,
                 receipt_timeout: int = 300):
        self.w3 = w3
        self.artifacts_dir = artifacts_dir
        self.account = account
        self.receipt_timeout = receipt_timeout
        self._deployer: Optional[str] = None

    @property
    def deployer(self) -> str:
        if self._deployer is None:
            self._deployer = resolve_deployer(self.w3, self.account)
        return self._deployer

    def deploy(self, contract_name: str, args: List[Any]) -> Tuple[str, str]:
        """
        Deploy `contract_name` with positional constructor `args`.

        Returns:
            (contract address, transaction hash)

        Raises:
            SubmitFailure: if the transaction cannot be sent or reverts
        """
        artifact = load_artifact(contract_name, self.artifacts_dir)
        factory = self.w3.eth.contract(abi=artifact['abi'], bytecode=artifact['bytecode'])

        tx_hash = None
        try:
            tx = factory.constructor(*args).build_transaction({
                'from': self.deployer,
                'nonce': self.w3.eth.get_transaction_count(self.deployer),
                'gasPrice': self.w3.eth.gas_price,
            })

            if self.account is not None:
                signed_tx = self.account.sign_transaction(tx)
                tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
            else:
                tx_hash = self.w3.eth.send_transaction(tx)

            logger.info(f"Deployment transaction for {contract_name} sent: {Web3.to_hex(tx_hash)}")
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except Exception as e:
            logger.error(f"Failed to deploy {contract_name}: {e}")
            raise SubmitFailure(contract_name, str(e), Web3.to_hex(tx_hash) if tx_hash is not None else None) from e

        if receipt['status'] != 1:
            logger.error(f"Deployment of {contract_name} reverted in block {receipt['blockNumber']}")
            raise SubmitFailure(contract_name, "transaction reverted", Web3.to_hex(tx_hash))

        address = receipt['contractAddress']
        logger.info(f"{contract_name} deployed at {address} in block {receipt['blockNumber']}")
        return address, Web3.to_hex(tx_hash)
