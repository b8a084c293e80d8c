import logging

logger = logging.getLogger(__name__)


def should_skip(current_network: str, expected_network: str) -> bool:
    """
    Decide whether a deployment step does not apply to the active network.

    The check also applies on local networks: a targeting mismatch is logged
    as a configuration error instead of being bypassed.
    """
    if current_network != expected_network:
        logger.error(
            f"Error: incompatible network {current_network} for this deployment step "
            f"(expected {expected_network})"
        )
        return True
    return False
