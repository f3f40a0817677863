"""
Exception types raised by the camouflage rewrite middleware.

ConfigurationError is raised while the middleware is constructed, before any
request is handled. InterceptionError and StreamError are raised per request
and always reach the host pipeline; nothing in this package logs an error and
carries on as if it had not happened.
"""


class CamouflageError(Exception):
    """Base class for all camouflage rewrite errors."""


class ConfigurationError(CamouflageError):
    """The rewrite options are malformed (bad URL, bad ignore pattern, ...)."""


class InterceptionError(CamouflageError):
    """The response could not be hijacked, or the hijack handler failed."""


class StreamError(CamouflageError):
    """Reading or writing the response body failed while it was rewritten."""
