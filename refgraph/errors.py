"""Exceptions raised outside the linting core.

The core reports problems as diagnostics. These are for the layers around it
(configuration loading, CLI argument handling) that genuinely cannot proceed.
"""


class RefgraphError(Exception):
    pass


class ConfigError(RefgraphError):
    """A config file exists but cannot be read, parsed or validated."""
