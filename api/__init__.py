"""
api - HTTP front for the booster ball tournament contract

Routes requests to the contract gateway and serializes the results. Holds
no state of its own; every answer comes from a fresh chain read.
"""

from .server import app

__all__ = ["app"]
