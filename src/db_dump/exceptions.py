"""Exception hierarchy for db-dump.

Both kinds of error are fatal for a run. Failures of a single table are not
exceptions: they are reported as TableExportResult values.
"""


class DumpError(Exception):
    """Base class for all db-dump errors."""


class ConfigurationError(DumpError):
    """Invalid or incomplete export configuration."""


class IntrospectionError(DumpError):
    """Database metadata could not be read."""
