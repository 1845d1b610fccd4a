"""Transport adapters: the terminal stage of every chain."""

from courier.adapters.httpx_adapter import HttpxAdapter

__all__ = ["HttpxAdapter"]
