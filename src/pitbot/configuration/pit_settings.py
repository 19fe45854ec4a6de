from typing import Any, Dict, List

from pitbot.errors import ValidationError

HOUR_MS = 3_600_000
DAY_MS = 24 * HOUR_MS

DEFAULT_SEVERITY_HOURS: Dict[int, float] = {1: 4, 2: 8, 3: 12, 4: 24, 5: 48}
DEFAULT_REPEAT_SEVERITY_HOURS: Dict[int, float] = {1: 1, 2: 4, 3: 9, 4: 24, 5: 48}
DEFAULT_ESCALATION_FACTORS: Dict[int, float] = {1: 1.0, 2: 1.05, 3: 1.1, 4: 1.3, 5: 3.0}
DEFAULT_SELF_TIMEOUT_HOURS = 24
DEFAULT_SELF_TIMEOUT_MAX_HOURS = 72


def _severity_table(raw: Any, default: Dict[int, float], name: str) -> Dict[int, float]:
    """Normalise a 1..5 keyed table from YAML, filling gaps from ``default``."""
    if raw is None:
        return dict(default)
    if not isinstance(raw, dict):
        raise ValidationError(f"pitbot.{name} must be a mapping of 1-5 to numbers")

    table = dict(default)
    for key, value in raw.items():
        try:
            level = int(key)
            number = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"pitbot.{name} has a non-numeric entry {key!r}: {value!r}")
        if level not in default:
            raise ValidationError(f"pitbot.{name} key {level} is outside 1-5")
        if number < 0:
            raise ValidationError(f"pitbot.{name}[{level}] must not be negative")
        table[level] = number
    return table


class PitSettings:
    """Typed accessors for the ``pitbot`` section of the application config.

    Tables are validated eagerly so a broken config fails at startup rather
    than on the first strike.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}
        self._severity_hours = _severity_table(
            self.data.get("severity_hours"), DEFAULT_SEVERITY_HOURS, "severity_hours"
        )
        self._repeat_severity_hours = _severity_table(
            self.data.get("repeat_severity_hours"), DEFAULT_REPEAT_SEVERITY_HOURS, "repeat_severity_hours"
        )
        self._escalation_factors = _severity_table(
            self.data.get("escalation_factors"), DEFAULT_ESCALATION_FACTORS, "escalation_factors"
        )
        if self.expiration_ms <= 0:
            raise ValidationError("pitbot.expiration_days must be positive")
        if self.sweep_interval_seconds <= 0:
            raise ValidationError("pitbot.sweep_interval_seconds must be positive")

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for `key` or `default` if missing."""
        return self.data.get(key, default)

    def _section(self, key: str) -> Dict[str, Any]:
        section = self.data.get(key, {})
        return section if isinstance(section, dict) else {}

    @staticmethod
    def _optional_int(value: Any) -> int | None:
        return int(value) if value else None

    # Discord wiring
    @property
    def guild_id(self) -> int | None:
        return self._optional_int(self.data.get("guild_id"))

    @property
    def log_channel_id(self) -> int | None:
        return self._optional_int(self.data.get("log_channel_id"))

    @property
    def pit_role_id(self) -> int | None:
        return self._optional_int(self.data.get("pit_role_id"))

    @property
    def owner_id(self) -> int | None:
        return self._optional_int(self.data.get("owner_id"))

    @property
    def moderator_role_ids(self) -> List[int]:
        value = self.data.get("moderator_role_ids", [])
        if not isinstance(value, list):
            value = [value]
        return [int(role_id) for role_id in value if role_id]

    @property
    def database_path(self) -> str:
        return str(self.data.get("database_path", "./data/pitbot.db"))

    # Engine tuning
    @property
    def expiration_ms(self) -> int:
        return int(float(self.data.get("expiration_days", 30)) * DAY_MS)

    @property
    def severity_durations_ms(self) -> Dict[int, int]:
        return {level: int(hours * HOUR_MS) for level, hours in self._severity_hours.items()}

    @property
    def repeat_severity_durations_ms(self) -> Dict[int, int]:
        return {level: int(hours * HOUR_MS) for level, hours in self._repeat_severity_hours.items()}

    @property
    def escalation_factors(self) -> Dict[int, float]:
        return dict(self._escalation_factors)

    @property
    def sweep_interval_seconds(self) -> float:
        return float(self.data.get("sweep_interval_seconds", 60.0))

    @property
    def self_timeout_default_hours(self) -> int:
        return int(self._section("self_timeout").get("default_hours", DEFAULT_SELF_TIMEOUT_HOURS))

    @property
    def self_timeout_max_hours(self) -> int:
        return int(self._section("self_timeout").get("max_hours", DEFAULT_SELF_TIMEOUT_MAX_HOURS))

    @property
    def minigame_hit_chance(self) -> float:
        return float(self._section("minigame").get("hit_chance", 0.5))

    @property
    def minigame_duration_ms(self) -> int:
        return int(float(self._section("minigame").get("duration_minutes", 60)) * 60_000)
