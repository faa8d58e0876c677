"""Process exit statuses.

Scripts that call ``spectool convert`` can tell a bad input document (7)
from a mistyped command line (2) without reading stderr::

    $ spectool convert broken.yaml; echo $?
    7
"""

EXIT_GENERIC_FAILURE = 1
"""Unclassified failure, including invalid configuration files."""

EXIT_INVALID_USAGE = 2
"""Bad arguments or an unknown config key."""

EXIT_SPEC_PARSE_ERROR = 7
"""The API description could not be decoded, upgraded or resolved."""
