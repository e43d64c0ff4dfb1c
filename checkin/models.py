"""
Row types for the check-in leaderboard.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Entry:
    """A participant on the leaderboard."""

    id: int
    name: str
    score: int
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "Entry":
        keys = row.keys()
        return cls(
            id=row["id"],
            name=row["name"],
            score=row["score"],
            created_at=row["created_at"] if "created_at" in keys else None,
        )

    def to_dict(self, include_created: bool = False) -> Dict[str, Any]:
        data = asdict(self)
        if not include_created:
            data.pop("created_at")
        return data


@dataclass(frozen=True)
class ScanRecord:
    """Proof that an origin was credited for scanning an entry."""

    entry_id: int
    origin: str
    scanned_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "ScanRecord":
        return cls(
            entry_id=row["entry_id"],
            origin=row["origin"],
            scanned_at=row["scanned_at"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
