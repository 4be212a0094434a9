"""Exit codes for the relnotes CLI.

A release-note run either renders a complete note or exits non-zero with
one of these codes; the code tells CI what class of failure happened.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes.

    - 0: Success
    - 1: User error (bad tag, missing release input, broken template)
    - 2: Environment error (gh missing, authentication failed)
    - 4: Network error (rate limited, provider unreachable)
    - 5: I/O error (revision or file missing from history)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    NETWORK_ERROR = 4
    IO_ERROR = 5
