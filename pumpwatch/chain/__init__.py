"""Chain access via web3."""

from pumpwatch.chain.client import ChainClient

__all__ = ["ChainClient"]
