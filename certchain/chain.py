# certchain/chain.py
"""
Read-only view of the CertificateRegistry contract.

The front-end commits `addCertificate(id, hash)` from the user's wallet; the
backend only needs to turn a certificate ID back into the committed hash.
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Tuple

from web3 import Web3

from certchain.errors import ChainConfigError

logger = logging.getLogger(__name__)

CONTRACT_NAME = "CertificateRegistry"


def _artifact_value(path: Path, key: str, missing_hint: str):
    """`key` from a hardhat JSON artifact; ChainConfigError if absent or unreadable."""
    if not path.exists():
        raise ChainConfigError(f"{path} not found. {missing_hint}")
    try:
        value = json.loads(path.read_text(encoding="utf-8")).get(key)
    except (OSError, ValueError) as e:
        raise ChainConfigError(f"cannot read {path}: {e}") from e
    if not value:
        raise ChainConfigError(f"`{key}` missing in {path}")
    return value


def load_contract_info(artifacts_dir: Path) -> Tuple[str, List[Any]]:
    """(address, abi) of the deployed registry from the hardhat artifacts dir."""
    root = Path(artifacts_dir)
    abi = _artifact_value(
        root / "contracts" / f"{CONTRACT_NAME}.sol" / f"{CONTRACT_NAME}.json",
        "abi",
        "Compile the contract with `npx hardhat compile`.",
    )
    address = _artifact_value(
        root / "deployments" / f"{CONTRACT_NAME}.json",
        "address",
        'The deploy script must write {"address": "0x..."} there.',
    )
    return address, abi


class CertificateRegistry:
    def __init__(self, contract):
        self.contract = contract

    @classmethod
    def connect(cls, rpc_url: str, artifacts_dir: Path) -> "CertificateRegistry":
        w3 = Web3(Web3.HTTPProvider(rpc_url))
        if not w3.is_connected():
            raise ChainConfigError(f"Web3 not connected. Is the node running at {rpc_url}?")
        address, abi = load_contract_info(artifacts_dir)
        contract = w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        logger.info("Using %s at %s via %s", CONTRACT_NAME, address, rpc_url)
        return cls(contract)

    def exists(self, cert_id: str) -> bool:
        return bool(self.contract.functions.certificateExists(cert_id).call())

    def lookup(self, cert_id: str) -> Optional[str]:
        """Hash committed under `cert_id`, or None if no such certificate."""
        if not self.exists(cert_id):
            return None
        return self.contract.functions.verifyCertificate(cert_id).call()
