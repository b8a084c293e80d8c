"""
Realitio LayerZero Proxy Deployment
===================================

Deploys the Reality.eth home proxy and the Kleros foreign proxy to a pair of
companion networks bridged by LayerZero.

Structure:
- networks: network registry and companion lookup
- store: deployment records and dependency resolution
- template: dispute template and data mapping synthesis
- orchestrator / profiles: tagged deployment steps
- submitter: web3 contract deployment
- explorer: constructor arguments and source verification status
"""

__version__ = "1.0.0"
