"""
DuckMesh: Job Assignment and Result Verification for a Compute Marketplace

The coordinator side of a decentralized inference marketplace:
- Provider selection by reputation, stake and liveness
- Multi-mode verification (majority consensus, reference similarity, attestation)
- Assign/collect orchestration against ledger, store and provider nodes
"""

__version__ = "0.1.0"
