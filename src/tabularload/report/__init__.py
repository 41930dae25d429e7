"""
Load reports and their console rendering.
"""

from tabularload.report.core import LoadReport, ResourceReport, ResourceStatus
from tabularload.report.reporter import ConsoleReporter

__all__ = ["ConsoleReporter", "LoadReport", "ResourceReport", "ResourceStatus"]
