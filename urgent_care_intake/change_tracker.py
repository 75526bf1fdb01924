"""Field-level diff between a patient's stored values and a new submission."""

import json
from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass
class ChangeSet:
    """Changed fields with their old and new values, plus an unchanged count.

    ``changes`` keeps the order in which fields appeared in the new record.
    """
    changes: dict[str, dict[str, Any]] = field(default_factory=dict)
    unchanged_count: int = 0

    @property
    def changed_fields(self) -> list[str]:
        return list(self.changes)

    @property
    def count(self) -> int:
        return len(self.changes)

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)

    def to_dict(self) -> dict:
        return {
            "changed_fields": self.changed_fields,
            "changes_detail": self.changes,
            "count": self.count,
            "unchanged_count": self.unchanged_count,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_json(cls, raw: str | None) -> "ChangeSet":
        if not raw:
            return cls()
        data = json.loads(raw)
        return cls(changes=dict(data.get("changes_detail", {})), unchanged_count=data.get("unchanged_count", 0))

    def merge(self, other: "ChangeSet") -> "ChangeSet":
        """Combine change sets from successive form pages; ``other`` wins per field."""
        return ChangeSet(
            changes={**self.changes, **other.changes},
            unchanged_count=self.unchanged_count + other.unchanged_count,
        )


def _normalize(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(int(value))
    return str(value).strip()


def track_changes(old_record: Mapping[str, Any], new_record: Mapping[str, Any]) -> ChangeSet:
    """Compare a new submission against the previously stored record.

    Only keys that already hold a value in ``old_record`` are compared; fields
    introduced by the new record are skipped entirely. Values are compared as
    trimmed strings.
    """
    changes = {}
    unchanged = 0

    for key, new_value in new_record.items():
        old_value = old_record.get(key)
        if old_value is None:
            continue

        if _normalize(old_value) != _normalize(new_value):
            changes[key] = {"old": old_value, "new": new_value}
        else:
            unchanged += 1

    return ChangeSet(changes=changes, unchanged_count=unchanged)
