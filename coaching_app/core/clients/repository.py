"""
In-memory client repository.

This module implements the repository pattern for client records. The
repository owns the collection outright: every record it hands out is a
copy, so callers can never mutate stored state except through the
operations below.

Failures are reported through return values, not exceptions:
- Not found: ``None`` (get_by_id, update, get_progress) or ``False``
- Invalid progress category: ``False``
- Malformed import snapshot: ``False``, existing state untouched

The repository is usually shared by every request of the web service, so
each operation runs under a single lock and behaves as one atomic step.
"""

import copy
import json
import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Union

from .models import (
    Client,
    ClientStatistics,
    FitnessLevel,
    MembershipStatus,
    MembershipType,
    ProgressCategory,
    ProgressEntry,
    ProgressLog,
    utc_now,
)


logger = logging.getLogger(__name__)


# Field tables: document key -> (attribute, accepted kind) per subsection.
_SECTION_FIELDS: dict[str, dict[str, tuple[str, type]]] = {
    "personal_info": {
        "firstName": ("first_name", str),
        "lastName": ("last_name", str),
        "email": ("email", str),
        "phone": ("phone", str),
        "dateOfBirth": ("date_of_birth", str),
        "emergencyContact": ("emergency_contact", dict),
        "address": ("address", dict),
    },
    "fitness_profile": {
        "height": ("height", str),
        "weight": ("weight", str),
        "fitnessLevel": ("fitness_level", FitnessLevel),
        "goals": ("goals", list),
        "medicalConditions": ("medical_conditions", list),
        "injuries": ("injuries", list),
        "preferences": ("preferences", dict),
    },
    "membership": {
        "type": ("type", MembershipType),
        "startDate": ("start_date", str),
        "endDate": ("end_date", str),
        "status": ("status", MembershipStatus),
        "trainer": ("trainer", str),
    },
}

# Subsections a partial update may touch, by their document key.
_UPDATABLE_SECTIONS = {
    "personalInfo": "personal_info",
    "fitnessProfile": "fitness_profile",
    "membership": "membership",
}

# Flat creation input keys that differ from the subsection document key.
_CREATE_ALIASES = {"membershipType": ("membership", "type")}

_INVALID = object()


def _coerce(value: Any, kind: type) -> Any:
    """Return value as the field's kind, or _INVALID if it does not fit."""
    if isinstance(kind, type) and issubclass(kind, Enum):
        try:
            return kind(value)
        except ValueError:
            return _INVALID
    if kind is dict:
        return copy.deepcopy(dict(value)) if isinstance(value, Mapping) else _INVALID
    if kind is list:
        return copy.deepcopy(list(value)) if isinstance(value, (list, tuple)) else _INVALID
    return value if isinstance(value, kind) else _INVALID


def _creation_fields() -> dict[str, tuple[str, str, type]]:
    fields: dict[str, tuple[str, str, type]] = {}
    for section, table in _SECTION_FIELDS.items():
        for key, (attr, kind) in table.items():
            fields[key] = (section, attr, kind)
    del fields["type"]
    for alias, (section, key) in _CREATE_ALIASES.items():
        attr, kind = _SECTION_FIELDS[section][key]
        fields[alias] = (section, attr, kind)
    return fields


_CREATE_FIELDS = _creation_fields()


def _parse_end_date(value: str) -> Optional[datetime]:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _resolve_category(name: Union[str, ProgressCategory]) -> Optional[ProgressCategory]:
    """Match a category by its name ("note") or its sequence name ("notes")."""
    for category in ProgressCategory:
        if name == category.value or name == category.sequence_name:
            return category
    return None


class EntryIdGenerator:
    """
    Time-derived progress entry ids that never repeat.

    Ids are epoch milliseconds, bumped past the previous id when two
    entries land in the same millisecond. Not thread-safe on its own; the
    repository calls it under its lock.
    """

    def __init__(self) -> None:
        self._last = 0

    def next_id(self) -> int:
        now_ms = time.time_ns() // 1_000_000
        self._last = max(now_ms, self._last + 1)
        return self._last

    def advance_past(self, entry_id: int) -> None:
        self._last = max(self._last, entry_id)


class ClientRepository:
    """
    Repository for coaching client records.

    Each method corresponds to an operation the application needs:
    - create / get_by_id / list_clients / update / delete
    - add_progress / get_progress for the embedded progress history
    - search and expiring_memberships for the coach's dashboards
    - export_all / import_all for snapshots
    - statistics for reporting

    Construct one per application and pass it to whoever needs it.
    """

    def __init__(self) -> None:
        self._clients: list[Client] = []
        self._next_id = 1
        self._entry_ids = EntryIdGenerator()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    # -----------------------------------------------------------------------
    # CRUD
    # -----------------------------------------------------------------------

    def create(self, data: Optional[Mapping[str, Any]] = None) -> Client:
        """
        Create a client from flat input fields.

        Missing, empty or ill-typed fields fall back to their defaults, so
        this never fails. Validation is a separate, advisory step (see
        validation.validate_client_data).
        """
        data = data if isinstance(data, Mapping) else {}

        with self._lock:
            client = Client(id=self._next_id)
            self._next_id += 1

            for key, (section, attr, kind) in _CREATE_FIELDS.items():
                raw = data.get(key)
                if not raw:
                    continue
                value = _coerce(raw, kind)
                if value is _INVALID:
                    logger.debug(
                        "Ignoring invalid creation field",
                        extra={"field": key, "client_id": client.id}
                    )
                    continue
                setattr(getattr(client, section), attr, value)

            self._clients.append(client)

            logger.info(
                "Client created",
                extra={"client_id": client.id, "membership_type": client.membership.type.value}
            )
            return copy.deepcopy(client)

    def get_by_id(self, client_id: int) -> Optional[Client]:
        """Load a client by id, or None if there is no such client."""
        with self._lock:
            client = self._find(client_id)
            return copy.deepcopy(client) if client is not None else None

    def list_clients(
        self,
        status: Optional[Union[str, MembershipStatus]] = None,
        trainer: Optional[str] = None,
        membership_type: Optional[Union[str, MembershipType]] = None,
    ) -> list[Client]:
        """
        List clients in creation order, optionally filtered.

        Filters are exact matches on the membership and are ANDed together.
        A filter left as None imposes no constraint.
        """
        with self._lock:
            matches = [
                client for client in self._clients
                if (status is None or client.membership.status == status)
                and (trainer is None or client.membership.trainer == trainer)
                and (membership_type is None or client.membership.type == membership_type)
            ]
            return copy.deepcopy(matches)

    def update(self, client_id: int, updates: Mapping[str, Any]) -> Optional[Client]:
        """
        Apply a partial update to a client.

        Only ``personalInfo``, ``fitnessProfile`` and ``membership`` are
        updatable. Each is merged one level deep: keys present in the
        update overwrite the stored value, every other key is kept. Nested
        objects under a key (address, preferences, ...) are replaced whole.
        """
        with self._lock:
            client = self._find(client_id)
            if client is None:
                return None

            if isinstance(updates, Mapping):
                for doc_key, section in _UPDATABLE_SECTIONS.items():
                    changes = updates.get(doc_key)
                    if isinstance(changes, Mapping):
                        self._merge_section(client, section, changes)

            client.touch()

            logger.info("Client updated", extra={"client_id": client_id})
            return copy.deepcopy(client)

    def delete(self, client_id: int) -> bool:
        """Remove a client. Returns False if there was nothing to remove."""
        with self._lock:
            for index, client in enumerate(self._clients):
                if client.id == client_id:
                    del self._clients[index]
                    logger.info("Client deleted", extra={"client_id": client_id})
                    return True
            return False

    # -----------------------------------------------------------------------
    # Progress
    # -----------------------------------------------------------------------

    def add_progress(
        self,
        client_id: int,
        category: Union[str, ProgressCategory],
        data: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """
        Append a progress entry to one of the client's four sequences.

        The entry gets a fresh unique id and the current timestamp; the
        caller's fields are merged in alongside them. Returns False, with
        nothing changed, for an unknown client or category.
        """
        try:
            resolved = ProgressCategory(category)
        except ValueError:
            logger.warning(
                "Rejected progress entry with invalid category",
                extra={"client_id": client_id, "category": str(category)}
            )
            return False

        with self._lock:
            client = self._find(client_id)
            if client is None:
                return False

            fields = {}
            if isinstance(data, Mapping):
                fields = {k: copy.deepcopy(v) for k, v in data.items() if k not in ("id", "date")}

            entry = ProgressEntry(id=self._entry_ids.next_id(), date=utc_now(), data=fields)
            client.progress.sequence(resolved).append(entry)
            client.touch()

            logger.debug(
                "Progress entry added",
                extra={"client_id": client_id, "category": resolved.value, "entry_id": entry.id}
            )
            return True

    def get_progress(
        self,
        client_id: int,
        category: Union[str, ProgressCategory] = "all",
    ) -> Union[ProgressLog, list[ProgressEntry], None]:
        """
        Read a client's progress history.

        "all" returns the whole ProgressLog; a category ("measurement") or
        sequence name ("measurements") returns that sequence. Unknown names
        return an empty list. None if the client does not exist.
        """
        with self._lock:
            client = self._find(client_id)
            if client is None:
                return None

            if category == "all":
                return copy.deepcopy(client.progress)

            resolved = _resolve_category(category)
            if resolved is None:
                return []
            return copy.deepcopy(client.progress.sequence(resolved))

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def search(self, term: str) -> list[Client]:
        """Case-insensitive substring match on first name, last name or email."""
        needle = (term or "").lower()
        with self._lock:
            matches = [
                client for client in self._clients
                if needle in client.personal_info.first_name.lower()
                or needle in client.personal_info.last_name.lower()
                or needle in client.personal_info.email.lower()
            ]
            return copy.deepcopy(matches)

    def expiring_memberships(self, days_ahead: int = 30) -> list[Client]:
        """
        Active clients whose membership ends within ``days_ahead`` days.

        Memberships that already ended still count (their end date is
        before the cutoff). Clients without an end date never expire.
        """
        cutoff = utc_now() + timedelta(days=days_ahead)
        with self._lock:
            matches = []
            for client in self._clients:
                if not client.membership.end_date or not client.membership.is_active:
                    continue
                end_date = _parse_end_date(client.membership.end_date)
                if end_date is not None and end_date <= cutoff:
                    matches.append(client)
            return copy.deepcopy(matches)

    def statistics(self) -> ClientStatistics:
        """Counts over the collection as it is right now."""
        with self._lock:
            stats = ClientStatistics(total_clients=len(self._clients))
            for client in self._clients:
                if client.membership.is_active:
                    stats.active_clients += 1
                stats.membership_types[client.membership.type.value] += 1
                stats.fitness_levels[client.fitness_profile.fitness_level.value] += 1
            return stats

    # -----------------------------------------------------------------------
    # Snapshots
    # -----------------------------------------------------------------------

    def export_all(self) -> str:
        """Serialize every client, in order, as indented JSON."""
        with self._lock:
            return json.dumps(
                [client.to_dict() for client in self._clients], indent=2, default=str
            )

    def import_all(self, serialized: str) -> bool:
        """
        Replace the whole collection with a snapshot from export_all.

        The snapshot is parsed and rebuilt completely before anything is
        swapped in, so a malformed snapshot leaves the current collection
        exactly as it was.
        """
        try:
            records = json.loads(serialized)
            if not isinstance(records, list):
                raise TypeError("Snapshot must be a JSON array of clients")
            clients = [Client.from_dict(record) for record in records]
            ids = [client.id for client in clients]
            if len(ids) != len(set(ids)):
                raise ValueError("Snapshot contains duplicate client ids")
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning("Rejected client snapshot", extra={"error": str(e)})
            return False

        with self._lock:
            self._clients = clients
            self._next_id = max(ids, default=0) + 1
            for client in clients:
                for entry in client.progress.entries():
                    self._entry_ids.advance_past(entry.id)

        logger.info("Client snapshot imported", extra={"client_count": len(clients)})
        return True

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _find(self, client_id: int) -> Optional[Client]:
        for client in self._clients:
            if client.id == client_id:
                return client
        return None

    def _merge_section(self, client: Client, section: str, changes: Mapping[str, Any]) -> None:
        target = getattr(client, section)
        table = _SECTION_FIELDS[section]
        for key, raw in changes.items():
            field_def = table.get(key)
            value = _INVALID if field_def is None else _coerce(raw, field_def[1])
            if value is _INVALID:
                logger.warning(
                    "Skipping unrecognized update field",
                    extra={"client_id": client.id, "section": section, "field": key}
                )
                continue
            setattr(target, field_def[0], value)
