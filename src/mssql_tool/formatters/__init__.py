"""Output formatters for MSSQL Tool."""

from mssql_tool.formatters.base import Formatter, FormatterRegistry, registry
from mssql_tool.formatters.csv import CSVFormatter
from mssql_tool.formatters.json import JSONFormatter
from mssql_tool.formatters.table import TableFormatter
