"""Event models shared between the notification source and the dispatcher."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Union


class EventKind(str, Enum):
    """inotifywait event tags the dispatcher acts on."""

    CREATE = "CREATE"
    MOVED_TO = "MOVED_TO"
    MODIFY = "MODIFY"
    DELETE = "DELETE"


@dataclass(frozen=True)
class NotificationEvent:
    """A single notification reported for the watched directory."""

    kind: FrozenSet[str]
    name: str

    @classmethod
    def from_record(cls, kind_line: str, name_line: str) -> "NotificationEvent":
        """Build an event from one kind-list line and one name line."""

        return cls(kind=frozenset(kind_line.split(",")), name=name_line)

    def has(self, kind: Union[EventKind, str]) -> bool:
        tag = kind.value if isinstance(kind, EventKind) else kind
        return tag in self.kind

    def has_any(self, *kinds: Union[EventKind, str]) -> bool:
        return any(self.has(kind) for kind in kinds)

    def describe(self) -> str:
        return f"kind={','.join(sorted(self.kind))} name={self.name!r}"
