"""
Check Verification

Deterministic validators and the dual-oracle verifier used for check steps.
"""

from .validators import CheckOutcome, validate_expected_text, validate_property_check
from .verifier import DualOracleVerifier

__all__ = [
    "CheckOutcome",
    "DualOracleVerifier",
    "validate_expected_text",
    "validate_property_check",
]
