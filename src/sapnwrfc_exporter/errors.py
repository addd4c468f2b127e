"""
Exception types for the exporter.

Leaf failures during a scrape (ConnectError, CallError) are caught by the
invoker and turned into an empty contribution. ConfigurationError raised at
load time stops startup.
"""


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConnectError(ExporterError):
    """A session to a system/server could not be established."""


class CallError(ExporterError):
    """A remote function module call failed."""


class PayloadError(CallError):
    """A remote response did not have the expected shape."""


class ConfigurationError(ExporterError):
    """Invalid metric or system configuration."""
