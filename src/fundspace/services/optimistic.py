"""Optimistic local state changes with explicit confirm and rollback.

A command changes local state before the remote write, then either
confirms with what the remote returned or restores exactly the state it
replaced. Rollback restores the captured prior values rather than applying
an inverse delta, so concurrent commands on other keys are left alone.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Set, TypeVar

import structlog

logger = structlog.get_logger(__name__)

R = TypeVar("R")


class OptimisticCommand(ABC):
    @abstractmethod
    def apply(self) -> None:
        """Change local state as if the remote write already succeeded."""

    def confirm(self, result: Any) -> None:
        """Reconcile local state with the remote result."""

    @abstractmethod
    def rollback(self, error: BaseException) -> None:
        """Restore the state captured by ``apply``."""


async def execute_optimistic(command: OptimisticCommand, remote: Callable[[], Awaitable[R]]) -> R:
    """Apply, await the remote call, then confirm or roll back and re-raise."""
    command.apply()
    try:
        result = await remote()
    except Exception as e:
        logger.warning("Remote write failed, rolling back", command=type(command).__name__, error=str(e))
        command.rollback(e)
        raise
    command.confirm(result)
    return result


@dataclass
class SavedGrantsState:
    """A profile's saved grant ids and the save counts shown next to grants."""

    saved_ids: Set[Any] = field(default_factory=set)
    save_counts: Dict[Any, int] = field(default_factory=dict)

    def is_saved(self, grant_id: Any) -> bool:
        return grant_id in self.saved_ids

    def count(self, grant_id: Any) -> int:
        return self.save_counts.get(grant_id, 0)


class _SavedGrantCommand(OptimisticCommand):
    def __init__(self, state: SavedGrantsState, grant_id: Any):
        self.state = state
        self.grant_id = grant_id
        self._was_saved: Optional[bool] = None
        self._prior_count: Optional[int] = None

    def _capture(self) -> None:
        self._was_saved = self.state.is_saved(self.grant_id)
        self._prior_count = self.state.save_counts.get(self.grant_id)

    def rollback(self, error: BaseException) -> None:
        if self._was_saved:
            self.state.saved_ids.add(self.grant_id)
        else:
            self.state.saved_ids.discard(self.grant_id)
        if self._prior_count is None:
            self.state.save_counts.pop(self.grant_id, None)
        else:
            self.state.save_counts[self.grant_id] = self._prior_count

    def confirm(self, result: Any) -> None:
        # A dict of fresh counts from the server replaces the local guess
        if isinstance(result, dict) and self.grant_id in result:
            self.state.save_counts[self.grant_id] = int(result[self.grant_id])


class SaveGrantCommand(_SavedGrantCommand):
    def apply(self) -> None:
        self._capture()
        if self._was_saved:
            return
        self.state.saved_ids.add(self.grant_id)
        self.state.save_counts[self.grant_id] = self.state.count(self.grant_id) + 1


class UnsaveGrantCommand(_SavedGrantCommand):
    def apply(self) -> None:
        self._capture()
        if not self._was_saved:
            return
        self.state.saved_ids.discard(self.grant_id)
        self.state.save_counts[self.grant_id] = max(0, self.state.count(self.grant_id) - 1)


class FollowCommand(OptimisticCommand):
    """Follow (or unfollow) a profile in a local following set."""

    def __init__(self, following: Set[str], profile_id: str, follow: bool = True):
        self.following = following
        self.profile_id = profile_id
        self.follow = follow
        self._was_following = False

    def apply(self) -> None:
        self._was_following = self.profile_id in self.following
        if self.follow:
            self.following.add(self.profile_id)
        else:
            self.following.discard(self.profile_id)

    def rollback(self, error: BaseException) -> None:
        if self._was_following:
            self.following.add(self.profile_id)
        else:
            self.following.discard(self.profile_id)
