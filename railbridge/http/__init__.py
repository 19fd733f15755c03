"""HTTP surface for the facilitator."""

from .app import SettleRequest, VerifyRequest, create_app

__all__ = ["create_app", "VerifyRequest", "SettleRequest"]
