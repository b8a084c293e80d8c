"""
Deployment record store and dependency resolver

Records live one JSON file per contract under <root>/<network>/<Name>.json,
the same layout hardhat-deploy uses, so that existing deployment folders can
be read and later runs see what earlier runs deployed.
"""

import hashlib
import json
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import requests

from .errors import DependencyNotDeployed, DeploymentError, RecordExists

logger = logging.getLogger(__name__)

CACHE_DIR = os.path.expanduser("~/.realitio-lz/cache")
CACHE_TTL = 86400

# Published export names -> logical names used by the deploy steps
DEFAULT_ALIASES = {
    "KlerosCore": "klerosCore",
    "KlerosCoreNeo": "klerosCore",
    "DisputeTemplateRegistry": "disputeTemplateRegistry",
    "WETH": "WETH",
    "EndpointV2": "EndpointV2",
    "Realitio": "Realitio",
}


def _encode_arg(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [_encode_arg(v) for v in value]
    return value


@dataclass(frozen=True)
class DeploymentRecord:
    """A contract deployed under a logical name"""
    logical_name: str
    address: str
    constructor_args: List[Any] = field(default_factory=list)
    transaction_hash: Optional[str] = None
    network: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "args": [_encode_arg(arg) for arg in self.constructor_args],
            "transactionHash": self.transaction_hash,
        }

    @classmethod
    def from_json(cls, logical_name: str, data: Dict[str, Any], network: Optional[str] = None):
        return cls(
            logical_name=logical_name,
            address=data["address"],
            constructor_args=list(data.get("args") or []),
            transaction_hash=data.get("transactionHash"),
            network=network,
        )


def fetch_json(url: str, cache_dir: str = CACHE_DIR) -> Dict[str, Any]:
    """
    Fetches JSON data from a URL, using a local cache to avoid repeated requests.
    The cache expires after 24 hours.
    """
    os.makedirs(cache_dir, exist_ok=True)

    h = hashlib.sha256(url.encode()).hexdigest()
    cached = os.path.join(cache_dir, f"{h}.json")

    if os.path.exists(cached) and time.time() - os.path.getmtime(cached) < CACHE_TTL:
        logger.info(f"Loading from cache: {url}")
        with open(cached, "r") as f:
            return json.load(f)

    logger.info(f"Fetching from network: {url}")
    try:
        response = requests.get(url, timeout=30)
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException as e:
        logger.error(f"Error fetching {url}: {e}")
        raise DeploymentError(f"Could not fetch deployment export from {url}: {e}") from e

    with open(cached, "w") as f:
        json.dump(data, f)
    return data


class DeploymentStore:
    """
    Append-only, name-keyed store of the DeploymentRecords of one network.

    The orchestrator is the only writer; a record is written once its
    deployment is confirmed and is never rewritten afterwards.
    """

    def __init__(self, root: Union[str, Path], network: str, chain_id: Optional[int] = None):
        self.root = Path(root)
        self.network = network
        self.chain_id = chain_id
        self.directory = self.root / network

    def _path(self, logical_name: str) -> Path:
        return self.directory / f"{logical_name}.json"

    def has(self, logical_name: str) -> bool:
        return self._path(logical_name).is_file()

    def get(self, logical_name: str) -> Optional[DeploymentRecord]:
        path = self._path(logical_name)
        if not path.is_file():
            return None
        with open(path, "r") as f:
            data = json.load(f)
        return DeploymentRecord.from_json(logical_name, data, network=self.network)

    def records(self) -> List[DeploymentRecord]:
        if not self.directory.is_dir():
            return []
        records = []
        for path in sorted(self.directory.glob("*.json")):
            record = self.get(path.stem)
            if record is not None:
                records.append(record)
        return records

    def resolve(self, logical_name: str) -> str:
        """Return the address deployed under `logical_name`"""
        record = self.get(logical_name)
        if record is None:
            logger.error(f"Dependency {logical_name} is not deployed on {self.network}")
            raise DependencyNotDeployed(logical_name, self.network)
        return record.address

    def resolve_all(self, logical_names: Iterable[str]) -> Dict[str, str]:
        """Resolve every name, failing before returning anything if one is missing"""
        return {name: self.resolve(name) for name in logical_names}

    def save(self, record: DeploymentRecord) -> DeploymentRecord:
        if self.has(record.logical_name):
            raise RecordExists(record.logical_name, self.network)

        self.directory.mkdir(parents=True, exist_ok=True)
        chain_id_file = self.directory / ".chainId"
        if self.chain_id is not None and not chain_id_file.exists():
            chain_id_file.write_text(str(self.chain_id))

        path = self._path(record.logical_name)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w") as f:
            json.dump(record.to_json(), f, indent=2)
        os.replace(tmp_path, path)

        logger.info(f"Recorded {record.logical_name} at {record.address} on {self.network}")
        return record

    def import_export(
        self,
        source: str,
        aliases: Optional[Dict[str, str]] = None,
        cache_dir: str = CACHE_DIR,
    ) -> List[DeploymentRecord]:
        """
        Seed the store from a hardhat-deploy export file or URL.

        Only contracts listed in `aliases` are imported, under their logical
        name. Names already recorded are left untouched.
        """
        aliases = DEFAULT_ALIASES if aliases is None else aliases

        if source.startswith("http://") or source.startswith("https://"):
            export = fetch_json(source, cache_dir=cache_dir)
        else:
            with open(source, "r") as f:
                export = json.load(f)

        export_chain_id = export.get("chainId")
        if self.chain_id is not None and export_chain_id is not None and int(export_chain_id) != self.chain_id:
            raise DeploymentError(
                f"Export {source} is for chain {export_chain_id}, not {self.network} ({self.chain_id})"
            )

        imported = []
        for published_name, contract in sorted(export.get("contracts", {}).items()):
            logical_name = aliases.get(published_name)
            if logical_name is None:
                continue
            if self.has(logical_name):
                logger.info(f"Keeping existing record for {logical_name} on {self.network}")
                continue
            record = DeploymentRecord(
                logical_name=logical_name,
                address=contract["address"],
                network=self.network,
            )
            imported.append(self.save(record))

        logger.info(f"Imported {len(imported)} deployment(s) from {source}")
        return imported
