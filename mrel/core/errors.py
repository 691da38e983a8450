"""Exit codes for CLI commands.

Each pipeline stage fails with its own code so release scripts can tell a bad
``--version`` argument apart from a broken manifest or a rejected ``git push``.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes.

    These values are part of the command-line contract and must stay stable:
    - 0: Success
    - 1: User error (malformed version, build number or argument)
    - 2: Configuration error (unreadable or invalid mrel.toml)
    - 3: Manifest error (a required manifest could not be synchronized)
    - 4: Version-control error (commit, tag or push failed)
    - 5: I/O error (changelog file could not be written, etc.)
    """

    OK = 0
    USER_ERROR = 1
    CONFIG_ERROR = 2
    MANIFEST_ERROR = 3
    VCS_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")
