"""Resilient async access layer for the Planning Center Online People API."""

__version__ = "0.1.0"
