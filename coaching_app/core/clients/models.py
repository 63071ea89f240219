"""
Domain models for coaching client management.

These models represent the core business concepts: the client, their
profile and membership, and the progress history a coach keeps for them.
They have no dependencies on web frameworks or storage backends.

Records are stored and exchanged in a camelCase document shape
(``personalInfo.firstName``, ``membership.type``, ...). ``to_dict`` and
``from_dict`` translate between that shape and the dataclasses.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Mapping, Optional


class FitnessLevel(str, Enum):
    """Where the client starts from."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class MembershipType(str, Enum):
    """Commercial tier of the membership."""
    BASIC = "basic"
    PREMIUM = "premium"
    ELITE = "elite"


class MembershipStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class ProgressCategory(str, Enum):
    """
    The four kinds of progress a coach records.

    Each category owns one sequence on the client's progress log.
    """
    MEASUREMENT = "measurement"
    WORKOUT = "workout"
    ASSESSMENT = "assessment"
    NOTE = "note"

    @property
    def sequence_name(self) -> str:
        """Name of the progress log sequence holding this category."""
        return f"{self.value}s"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _today() -> str:
    return utc_now().date().isoformat()


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise TypeError(f"Expected ISO-8601 timestamp, got {type(value).__name__}")
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key, {})
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TypeError(f"'{key}' must be an object")
    return value


def _text(data: Mapping[str, Any], key: str, default: str = "") -> str:
    value = data.get(key, default)
    if not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string")
    return value


def _list(data: Mapping[str, Any], key: str) -> list[Any]:
    value = data.get(key, [])
    if not isinstance(value, list):
        raise TypeError(f"'{key}' must be a list")
    return list(value)


def _mapping(data: Mapping[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, Mapping):
        raise TypeError(f"'{key}' must be an object")
    return dict(value)


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------

@dataclass
class PersonalInfo:
    """Who the client is and how to reach them."""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    date_of_birth: str = ""
    emergency_contact: dict[str, str] = field(default_factory=dict)
    address: dict[str, str] = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict[str, Any]:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "dateOfBirth": self.date_of_birth,
            "emergencyContact": dict(self.emergency_contact),
            "address": dict(self.address),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PersonalInfo":
        return cls(
            first_name=_text(data, "firstName"),
            last_name=_text(data, "lastName"),
            email=_text(data, "email"),
            phone=_text(data, "phone"),
            date_of_birth=_text(data, "dateOfBirth"),
            emergency_contact=_mapping(data, "emergencyContact"),
            address=_mapping(data, "address"),
        )


@dataclass
class FitnessProfile:
    """
    Physical baseline and training intent.

    Height and weight stay free-form strings ("5'10\"", "180 lbs") because
    coaches enter them in whatever units the client uses.
    """
    height: str = ""
    weight: str = ""
    fitness_level: FitnessLevel = FitnessLevel.BEGINNER
    goals: list[str] = field(default_factory=list)
    medical_conditions: list[str] = field(default_factory=list)
    injuries: list[str] = field(default_factory=list)
    preferences: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "height": self.height,
            "weight": self.weight,
            "fitnessLevel": self.fitness_level.value,
            "goals": list(self.goals),
            "medicalConditions": list(self.medical_conditions),
            "injuries": list(self.injuries),
            "preferences": dict(self.preferences),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FitnessProfile":
        return cls(
            height=_text(data, "height"),
            weight=_text(data, "weight"),
            fitness_level=FitnessLevel(data.get("fitnessLevel", FitnessLevel.BEGINNER.value)),
            goals=_list(data, "goals"),
            medical_conditions=_list(data, "medicalConditions"),
            injuries=_list(data, "injuries"),
            preferences=_mapping(data, "preferences"),
        )


@dataclass
class Membership:
    """The commercial relationship: tier, dates, status and assigned trainer."""
    type: MembershipType = MembershipType.BASIC
    start_date: str = field(default_factory=_today)
    end_date: str = ""
    status: MembershipStatus = MembershipStatus.ACTIVE
    trainer: str = ""

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "status": self.status.value,
            "trainer": self.trainer,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Membership":
        return cls(
            type=MembershipType(data.get("type", MembershipType.BASIC.value)),
            start_date=_text(data, "startDate", _today()),
            end_date=_text(data, "endDate"),
            status=MembershipStatus(data.get("status", MembershipStatus.ACTIVE.value)),
            trainer=_text(data, "trainer"),
        )


@dataclass
class ProgressEntry:
    """
    A dated record of a measurement, workout, assessment or note.

    The caller's fields (weight, bodyFat, notes, ...) live in ``data`` and
    are flattened next to ``id`` and ``date`` when serialized.
    """
    id: int
    date: datetime = field(default_factory=utc_now)
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {**self.data, "id": self.id, "date": self.date.isoformat()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProgressEntry":
        entry_id = data["id"]
        if isinstance(entry_id, bool) or not isinstance(entry_id, int):
            raise TypeError("Progress entry id must be an integer")
        extra = {k: v for k, v in data.items() if k not in ("id", "date")}
        return cls(id=entry_id, date=_parse_timestamp(data["date"]), data=extra)


@dataclass
class ProgressLog:
    """The four append-only progress sequences of one client."""
    measurements: list[ProgressEntry] = field(default_factory=list)
    workouts: list[ProgressEntry] = field(default_factory=list)
    assessments: list[ProgressEntry] = field(default_factory=list)
    notes: list[ProgressEntry] = field(default_factory=list)

    def sequence(self, category: ProgressCategory) -> list[ProgressEntry]:
        return getattr(self, category.sequence_name)

    def entries(self) -> list[ProgressEntry]:
        """Every entry across all four sequences."""
        return [
            entry
            for category in ProgressCategory
            for entry in self.sequence(category)
        ]

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {
            category.sequence_name: [e.to_dict() for e in self.sequence(category)]
            for category in ProgressCategory
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProgressLog":
        log = cls()
        for category in ProgressCategory:
            raw = data.get(category.sequence_name) or []
            if not isinstance(raw, list):
                raise TypeError(f"'{category.sequence_name}' must be a list")
            log.sequence(category).extend(ProgressEntry.from_dict(item) for item in raw)
        return log


# ---------------------------------------------------------------------------
# Aggregate root
# ---------------------------------------------------------------------------

@dataclass
class Client:
    """
    A person enrolled for coaching.

    This is the aggregate root: it owns the profile, the membership and
    the full progress history. Progress is embedded, so deleting a client
    removes its history with it.
    """
    id: int
    personal_info: PersonalInfo = field(default_factory=PersonalInfo)
    fitness_profile: FitnessProfile = field(default_factory=FitnessProfile)
    membership: Membership = field(default_factory=Membership)
    progress: ProgressLog = field(default_factory=ProgressLog)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.updated_at is None:
            self.updated_at = self.created_at
        if self.updated_at < self.created_at:
            raise ValueError("updatedAt cannot be earlier than createdAt")

    def touch(self) -> None:
        """Refresh updated_at, always moving it strictly forward."""
        now = utc_now()
        if now <= self.updated_at:
            now = self.updated_at + timedelta(microseconds=1)
        self.updated_at = now

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "personalInfo": self.personal_info.to_dict(),
            "fitnessProfile": self.fitness_profile.to_dict(),
            "membership": self.membership.to_dict(),
            "progress": self.progress.to_dict(),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Client":
        """
        Rebuild a client from its document shape.

        Raises ValueError, TypeError or KeyError if the document is not a
        structurally valid client.
        """
        if not isinstance(data, Mapping):
            raise TypeError("Client record must be an object")
        client_id = data["id"]
        if isinstance(client_id, bool) or not isinstance(client_id, int):
            raise TypeError("Client id must be an integer")
        created_at = _parse_timestamp(data["createdAt"]) if "createdAt" in data else utc_now()
        updated_at = _parse_timestamp(data["updatedAt"]) if "updatedAt" in data else None
        return cls(
            id=client_id,
            personal_info=PersonalInfo.from_dict(_section(data, "personalInfo")),
            fitness_profile=FitnessProfile.from_dict(_section(data, "fitnessProfile")),
            membership=Membership.from_dict(_section(data, "membership")),
            progress=ProgressLog.from_dict(_section(data, "progress")),
            created_at=created_at,
            updated_at=updated_at,
        )


@dataclass
class ClientStatistics:
    """Aggregate counts over the live client collection."""
    total_clients: int = 0
    active_clients: int = 0
    membership_types: dict[str, int] = field(
        default_factory=lambda: {t.value: 0 for t in MembershipType}
    )
    fitness_levels: dict[str, int] = field(
        default_factory=lambda: {level.value: 0 for level in FitnessLevel}
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalClients": self.total_clients,
            "activeClients": self.active_clients,
            "membershipTypes": dict(self.membership_types),
            "fitnessLevels": dict(self.fitness_levels),
        }


@dataclass
class WorkoutPlan:
    """A training plan a coach assigns to one client."""
    id: str
    client_id: int
    title: str
    exercises: list[dict[str, Any]] = field(default_factory=list)
    notes: str = ""
    assigned_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "clientId": self.client_id,
            "title": self.title,
            "exercises": [dict(e) for e in self.exercises],
            "notes": self.notes,
            "assignedAt": self.assigned_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, plan_id: str, data: Mapping[str, Any]) -> "WorkoutPlan":
        return cls(
            id=plan_id,
            client_id=data["clientId"],
            title=_text(data, "title"),
            exercises=[dict(e) for e in data.get("exercises") or []],
            notes=_text(data, "notes"),
            assigned_at=_parse_timestamp(data["assignedAt"]) if "assignedAt" in data else utc_now(),
        )
