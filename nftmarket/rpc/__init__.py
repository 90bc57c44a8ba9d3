"""RPC surface: JSON-RPC callables and the FastAPI REST adapter."""

RPC_PREFIX = "/market"

__all__ = ["RPC_PREFIX"]
