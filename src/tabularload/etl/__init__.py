"""
Import orchestration: drives resources through definition,
materialization and row import.
"""

from tabularload.etl.pipeline import ImportPipeline, run

__all__ = ["ImportPipeline", "run"]
