"""MSSQL Tool - SQL Server administration commands."""

from mssql_tool.__about__ import __version__

__all__ = ["__version__"]
