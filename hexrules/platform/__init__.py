"""
Platform primitives for input fingerprinting and change-notified recomputation.
"""

from hexrules.platform.fingerprint import input_fingerprint
from hexrules.platform.session import RulesSession

__all__ = [
    "input_fingerprint",
    "RulesSession",
]
