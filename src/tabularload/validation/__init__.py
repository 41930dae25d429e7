"""
Verification of loaded tables against their definitions.
"""

from tabularload.validation.core import (
    VerificationResult,
    dataframe_schema,
    verify_table,
)

__all__ = ["VerificationResult", "dataframe_schema", "verify_table"]
