"""
Backend TrustScan: resilient aggregation and risk scoring for Solana subjects.

Given an address or transaction signature, aggregates on-chain state and
off-chain metadata from unreliable upstreams and returns a 0-100 trust score
with typed security risks. Modular architecture: rpc (endpoint pool),
analytics (classifier, holders, metadata, rules, score), config and logging.
"""

__version__ = "0.1.0"
