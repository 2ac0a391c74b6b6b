"""Contributor-consensus completion rule.

Pure functions with no external dependencies.
"""
from collections.abc import Iterable
from dataclasses import dataclass

from app.domain.stages import ProgressStatus


@dataclass
class ContributorTally:
    completed: int
    total: int

    @property
    def all_completed(self) -> bool:
        # No contributors means nobody can finish the stage
        return self.total > 0 and self.completed == self.total


def tally_contributors(statuses: Iterable[ProgressStatus | str | None]) -> ContributorTally:
    """Count contributors and how many have finished the stage.

    Args:
        statuses: progress status of every non-owner membership on one instance

    Returns:
        ContributorTally; strict AND over the set, no partial credit
    """
    total = 0
    completed = 0
    for status in statuses:
        total += 1
        if status is not None and ProgressStatus(status) == ProgressStatus.STAGE_COMPLETE:
            completed += 1
    return ContributorTally(completed=completed, total=total)
