"""Reporting client for the Nimbus workforce-management OData API."""

__version__ = "0.1.0"
