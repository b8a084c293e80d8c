import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

from .errors import MissingArtifact

logger = logging.getLogger(__name__)


def find_artifact(contract_name: str, artifacts_dir: Union[str, Path]) -> Path:
    """Locate artifacts/**/<Name>.json, skipping hardhat's .dbg.json files"""
    root = Path(artifacts_dir)
    matches = sorted(
        path for path in root.rglob(f"{contract_name}.json")
        if not path.name.endswith(".dbg.json")
    )
    if not matches:
        raise MissingArtifact(contract_name, str(root))
    if len(matches) > 1:
        logger.warning(f"Several artifacts named {contract_name}, using {matches[0]}")
    return matches[0]


def load_artifact(contract_name: str, artifacts_dir: Union[str, Path]) -> Dict[str, Any]:
    """Loads the ABI and creation bytecode of a compiled contract."""
    path = find_artifact(contract_name, artifacts_dir)
    with open(path, 'r') as f:
        data = json.load(f)

    bytecode = data.get('bytecode')
    # foundry artifacts nest the bytecode object
    if isinstance(bytecode, dict):
        bytecode = bytecode.get('object')
    if not bytecode or bytecode == '0x':
        raise MissingArtifact(contract_name, f"{path} (no bytecode)")
    return {'abi': data['abi'], 'bytecode': bytecode}
