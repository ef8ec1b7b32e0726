"""Exceptions raised at the chain and delivery boundaries."""

from __future__ import annotations


class ChainReadError(RuntimeError):
    """An RPC read failed or timed out."""

    def __init__(self, call: str, cause: BaseException | None = None) -> None:
        detail = f"{type(cause).__name__}: {cause}" if cause else "unknown error"
        super().__init__(f"{call} failed ({detail})")
        self.call = call
        self.cause = cause


class DeliveryError(RuntimeError):
    """A notification channel rejected or failed to deliver a message."""
