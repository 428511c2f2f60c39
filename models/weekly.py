"""
Weekly race data management and serialization.
Handles storing the weekly race settings and its leaderboard.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, List, NamedTuple, Optional

from models.preset import Preset


class LeaderboardEntry(NamedTuple):
    """A ranked leaderboard line. time is None for a forfeit (DNF)."""
    rank: int
    username: str
    time: Optional[timedelta]


class Weekly:
    """Manages the weekly race settings and leaderboard."""

    def __init__(
        self,
        week_number: int = -1,
        preset_name: str = "",
        preset: Optional[Preset] = None,
        seed: str = "",
        timestamp: Optional[datetime] = None
    ):
        self.week_number = week_number
        self.preset_name = preset_name
        self.preset = preset
        self.seed = seed
        self.timestamp = timestamp
        self.leaderboard: Dict[str, Optional[timedelta]] = {}  # username -> time, None for DNF

    @classmethod
    def invalid(cls) -> 'Weekly':
        """Weekly used when nothing has been stored yet."""
        return cls()

    @classmethod
    def not_set(cls, week_number: int, now: Optional[datetime] = None) -> 'Weekly':
        """Blank weekly for a week whose race has not been generated."""
        return cls(
            week_number=week_number,
            preset_name="not-set",
            seed="0",
            timestamp=now or datetime.now(timezone.utc)
        )

    @property
    def is_valid(self) -> bool:
        return self.week_number >= 0

    def add_to_leaderboard(self, username: str, time: timedelta) -> None:
        """Add or replace a player's time."""
        self.leaderboard[username] = time

    def forfeit(self, username: str) -> None:
        """Record a player as did-not-finish."""
        self.leaderboard[username] = None

    def has_entry(self, username: str) -> bool:
        return username in self.leaderboard

    def ranked_entries(self) -> List[LeaderboardEntry]:
        """
        Return leaderboard entries sorted by time, forfeits last.

        Equal times share a rank; all forfeits share the rank after the last
        finisher.
        """
        ordered = sorted(
            self.leaderboard.items(),
            key=lambda x: (x[1] is None, x[1] or timedelta(0), x[0].lower())
        )

        entries = []
        rank = 0
        previous: object = object()
        for position, (username, time) in enumerate(ordered, 1):
            if time != previous:
                rank = position
                previous = time
            entries.append(LeaderboardEntry(rank, username, time))

        return entries

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON storage."""
        return {
            'week_number': self.week_number,
            'preset_name': self.preset_name,
            'preset': self.preset.to_dict() if self.preset else None,
            'seed': self.seed,
            'leaderboard': {
                k: int(v.total_seconds()) if v is not None else None
                for k, v in self.leaderboard.items()
            },
            'timestamp': self.timestamp.isoformat() if self.timestamp else None
        }

    @classmethod
    def from_dict(cls, data: dict, presets: Optional[Dict[str, Preset]] = None) -> 'Weekly':
        """
        Deserialize from dictionary.

        Args:
            data: Stored weekly
            presets: Known presets, used when only the preset name was stored
        """
        weekly = cls(
            week_number=data.get('week_number', -1),
            preset_name=data.get('preset_name', ""),
            seed=data.get('seed', "")
        )

        preset_data = data.get('preset')
        if preset_data:
            weekly.preset = Preset.from_dict(preset_data)
        elif presets and weekly.preset_name in presets:
            weekly.preset = presets[weekly.preset_name].copy()

        weekly.leaderboard = {
            str(k): timedelta(seconds=v) if v is not None else None
            for k, v in (data.get('leaderboard') or {}).items()
        }

        timestamp_str = data.get('timestamp')
        if timestamp_str:
            dt = datetime.fromisoformat(timestamp_str)
            # Ensure timezone-aware datetime
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            weekly.timestamp = dt

        return weekly
