"""
Tabularload: tabular data package loader.

This package parses data package descriptors, derives table definitions
from their field schemas and bulk-loads the described CSV files into a
relational store.
"""

from importlib.metadata import version

__version__ = version("tabularload")

__all__ = ["__version__"]
