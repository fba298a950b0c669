"""
Solana JSON-RPC access: endpoint handles and the fallback endpoint pool.
"""

from backend_trustscan.rpc.client import RpcEndpoint
from backend_trustscan.rpc.endpoint_pool import EndpointPool

__all__ = ["EndpointPool", "RpcEndpoint"]
