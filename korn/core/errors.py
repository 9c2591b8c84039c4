"""Error codes for CLI exit status.

Each korn command maps its failure onto one of these codes so scripts driving
a release can tell a misconfigured application from a failed pipeline.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success (including a release wait that timed out)
    - 1: User error (bad flags, invalid notes file)
    - 2: Configuration error (missing labels, missing release plan)
    - 3: Upstream error (cluster, registry or git unreachable)
    - 4: Release failed (pipeline reported Failed, release deleted)
    - 5: Not found (no record, no valid snapshot candidate)
    """

    OK = 0
    USER_ERROR = 1
    CONFIG_ERROR = 2
    UPSTREAM_ERROR = 3
    RELEASE_FAILED = 4
    NOT_FOUND = 5

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
