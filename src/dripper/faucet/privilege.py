"""Allow-list of internal requesters exempt from drip limits."""

from collections.abc import Iterable


class PrivilegeList:
    """Static allow-list of privileged requester IDs.

    Parameters
    ----------
    requester_ids : Iterable[str]
        Requester IDs (e.g. Slack user IDs) that bypass the daily quota
        and the balance cap.
    """

    def __init__(self, requester_ids: Iterable[str] = ()):
        self._requester_ids = frozenset(requester_ids)

    def __len__(self) -> int:
        return len(self._requester_ids)

    def is_privileged(self, requester_id: str) -> bool:
        """Check whether a requester is on the allow-list."""
        return requester_id in self._requester_ids
