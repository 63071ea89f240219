"""
Unit tests for the client domain models.

These tests verify the core data model without touching external
services (no API calls, no document store, no file system).

Testing philosophy:
- Test behavior, not implementation
- Each test should have a clear "given/when/then" structure
- Use descriptive names that explain what we're testing
- Prefer real objects over mocks where practical
"""

from datetime import datetime, timedelta, timezone

import pytest

from coaching_app.core.clients.models import (
    Client,
    ClientStatistics,
    FitnessLevel,
    FitnessProfile,
    Membership,
    MembershipStatus,
    MembershipType,
    PersonalInfo,
    ProgressCategory,
    ProgressEntry,
    ProgressLog,
    WorkoutPlan,
)


# ---------------------------------------------------------------------------
# Value Type Tests
# ---------------------------------------------------------------------------

class TestDefaults:
    """A bare record carries the documented defaults."""

    def test_fitness_profile_defaults(self):
        profile = FitnessProfile()

        assert profile.fitness_level == FitnessLevel.BEGINNER
        assert profile.goals == []
        assert profile.medical_conditions == []
        assert profile.injuries == []
        assert profile.preferences == {}

    def test_membership_defaults_to_basic_active_starting_today(self):
        membership = Membership()

        assert membership.type == MembershipType.BASIC
        assert membership.status == MembershipStatus.ACTIVE
        assert membership.start_date == datetime.now(timezone.utc).date().isoformat()
        assert membership.end_date == ""
        assert membership.trainer == ""

    def test_default_lists_are_not_shared(self):
        """Each profile gets its own goals list."""
        first = FitnessProfile()
        second = FitnessProfile()

        first.goals.append("endurance")

        assert second.goals == []


class TestPersonalInfo:

    def test_full_name_joins_first_and_last(self):
        info = PersonalInfo(first_name="John", last_name="Doe")
        assert info.full_name == "John Doe"

    def test_to_dict_uses_document_keys(self):
        info = PersonalInfo(first_name="John", date_of_birth="1990-05-15")

        data = info.to_dict()

        assert data["firstName"] == "John"
        assert data["dateOfBirth"] == "1990-05-15"
        assert data["emergencyContact"] == {}


class TestProgressCategory:

    @pytest.mark.parametrize("category,sequence", [
        (ProgressCategory.MEASUREMENT, "measurements"),
        (ProgressCategory.WORKOUT, "workouts"),
        (ProgressCategory.ASSESSMENT, "assessments"),
        (ProgressCategory.NOTE, "notes"),
    ])
    def test_each_category_maps_to_its_sequence(self, category, sequence):
        assert category.sequence_name == sequence

    def test_log_returns_the_matching_sequence(self):
        log = ProgressLog()
        entry = ProgressEntry(id=1, data={"weight": "150"})

        log.sequence(ProgressCategory.MEASUREMENT).append(entry)

        assert log.measurements == [entry]
        assert log.workouts == []


class TestProgressEntry:

    def test_to_dict_flattens_caller_fields(self):
        date = datetime(2026, 1, 5, 9, 30, tzinfo=timezone.utc)
        entry = ProgressEntry(id=42, date=date, data={"weight": "150", "bodyFat": "22%"})

        assert entry.to_dict() == {
            "id": 42,
            "date": "2026-01-05T09:30:00+00:00",
            "weight": "150",
            "bodyFat": "22%",
        }

    def test_from_dict_rejects_non_integer_id(self):
        with pytest.raises(TypeError, match="integer"):
            ProgressEntry.from_dict({"id": "abc", "date": "2026-01-05T09:30:00+00:00"})


# ---------------------------------------------------------------------------
# Client Aggregate Tests
# ---------------------------------------------------------------------------

class TestClient:
    """Tests for the Client aggregate."""

    def test_new_client_starts_with_empty_progress(self):
        client = Client(id=1)

        assert client.progress.entries() == []
        assert client.updated_at == client.created_at

    def test_touch_moves_updated_at_strictly_forward(self):
        """Even if the clock hasn't moved, updated_at must advance."""
        future = datetime.now(timezone.utc) + timedelta(hours=1)
        client = Client(id=1, created_at=future)

        client.touch()

        assert client.updated_at > future

    def test_updated_at_cannot_precede_created_at(self):
        created = datetime(2026, 1, 2, tzinfo=timezone.utc)

        with pytest.raises(ValueError, match="updatedAt"):
            Client(id=1, created_at=created, updated_at=created - timedelta(days=1))

    def test_document_round_trip_preserves_record(self):
        client = Client(
            id=7,
            personal_info=PersonalInfo(first_name="Sarah", address={"city": "Anytown"}),
            fitness_profile=FitnessProfile(fitness_level=FitnessLevel.ADVANCED, goals=["strength"]),
            membership=Membership(type=MembershipType.ELITE, end_date="2026-12-31"),
        )
        client.progress.notes.append(ProgressEntry(id=1, data={"text": "Great week"}))

        assert Client.from_dict(client.to_dict()) == client

    def test_from_dict_rejects_unknown_enum_value(self):
        data = Client(id=1).to_dict()
        data["fitnessProfile"]["fitnessLevel"] = "expert"

        with pytest.raises(ValueError):
            Client.from_dict(data)

    def test_from_dict_requires_an_integer_id(self):
        with pytest.raises(TypeError, match="integer"):
            Client.from_dict({"id": "1"})

    def test_from_dict_fills_missing_sections_with_defaults(self):
        client = Client.from_dict({"id": 3})

        assert client.fitness_profile.fitness_level == FitnessLevel.BEGINNER
        assert client.membership.status == MembershipStatus.ACTIVE


class TestStatisticsAndPlans:

    def test_statistics_start_with_every_bucket_at_zero(self):
        stats = ClientStatistics()

        assert stats.to_dict() == {
            "totalClients": 0,
            "activeClients": 0,
            "membershipTypes": {"basic": 0, "premium": 0, "elite": 0},
            "fitnessLevels": {"beginner": 0, "intermediate": 0, "advanced": 0},
        }

    def test_workout_plan_document_round_trip(self):
        plan = WorkoutPlan(id="abc", client_id=4, title="Strength block", exercises=[{"name": "Squat"}])

        assert WorkoutPlan.from_dict("abc", plan.to_dict()) == plan
