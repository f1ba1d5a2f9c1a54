import copy
from typing import Any


class SnapshotStore:
    """Base for dict-backed repositories that take part in in-memory transactions."""

    def _state(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in vars(self).items()
            if isinstance(value, (dict, list, int))
        }

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._state())

    def restore(self, state: dict[str, Any]) -> None:
        for name, value in state.items():
            setattr(self, name, value)
