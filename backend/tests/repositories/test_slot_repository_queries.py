"""SlotRepository range queries and conditional updates."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from wakepark.core.enums import SlotStatus
from wakepark.core.exceptions import RepositoryException
from wakepark.models.slot import Slot
from wakepark.repositories.factory import RepositoryFactory

TUESDAY = date(2025, 5, 20)


@pytest.fixture
def repository(db):
    return RepositoryFactory.create_slot_repository(db)


@pytest.fixture
def afternoon(make_slot, local_instant):
    """14:00 available, 14:30 blocked, 15:00 and 15:30 booked."""
    return [
        make_slot(local_instant(TUESDAY, "14:00")),
        make_slot(local_instant(TUESDAY, "14:30"), SlotStatus.BLOCKED, block_reason="rope"),
        make_slot(local_instant(TUESDAY, "15:00"), SlotStatus.BOOKED, "WB-2505-0001"),
        make_slot(local_instant(TUESDAY, "15:30"), SlotStatus.BOOKED, "WB-2505-0001"),
    ]


class TestReads:
    def test_in_range_is_half_open(self, repository, afternoon, local_instant):
        slots = repository.get_in_range(local_instant(TUESDAY, "14:30"), local_instant(TUESDAY, "15:30"))
        assert [slot.id for slot in slots] == [afternoon[1].id, afternoon[2].id]

    def test_datetimes_come_back_aware(self, repository, afternoon):
        slot = repository.get_by_ids([afternoon[0].id])[0]
        assert slot.start_time.tzinfo is not None
        assert slot.start_time.utcoffset() == timedelta(0)

    def test_booked_overlapping(self, repository, afternoon, local_instant):
        slots = repository.get_booked_overlapping(
            local_instant(TUESDAY, "14:00"), local_instant(TUESDAY, "15:15")
        )
        assert [slot.id for slot in slots] == [afternoon[2].id]

    def test_has_booked_between(self, repository, afternoon, local_instant):
        assert repository.has_booked_between(local_instant(TUESDAY, "15:00"), local_instant(TUESDAY, "16:00"))
        assert not repository.has_booked_between(
            local_instant(TUESDAY, "14:00"), local_instant(TUESDAY, "15:00")
        )

    def test_by_reference(self, repository, afternoon):
        assert [slot.id for slot in repository.get_by_reference("WB-2505-0001")] == [
            afternoon[2].id,
            afternoon[3].id,
        ]
        assert repository.get_by_references([]) == []

    def test_find_overlapping_any_status(self, repository, afternoon, local_instant):
        blocked = repository.find_overlapping(
            local_instant(TUESDAY, "14:45"), local_instant(TUESDAY, "15:15")
        )
        assert blocked.id == afternoon[1].id
        assert repository.find_overlapping(
            local_instant(TUESDAY, "16:00"), local_instant(TUESDAY, "16:30")
        ) is None
        assert repository.find_overlapping(
            local_instant(TUESDAY, "13:30"), local_instant(TUESDAY, "14:00")
        ) is None

    def test_count_in_range(self, repository, afternoon, local_instant):
        start, end = local_instant(TUESDAY, "00:00"), local_instant(TUESDAY, "23:30")
        assert repository.count_in_range(start, end) == 4


class TestConditionalUpdates:
    def test_claim_only_available_rows(self, repository, db, afternoon):
        claimed = repository.claim_available_for_booking(
            [afternoon[0].id, afternoon[1].id], "WB-2505-0002"
        )
        db.commit()

        assert claimed == 1
        db.refresh(afternoon[0])
        db.refresh(afternoon[1])
        assert afternoon[0].booking_reference == "WB-2505-0002"
        assert afternoon[1].status == SlotStatus.BLOCKED

    def test_block_then_release(self, repository, db, afternoon):
        assert repository.block_available([afternoon[0].id, afternoon[2].id], "storm") == 1
        assert repository.release_blocked([afternoon[0].id, afternoon[1].id], Decimal("30")) == 2
        db.commit()

        for slot in afternoon[:2]:
            db.refresh(slot)
            assert slot.status == SlotStatus.AVAILABLE
            assert slot.price == Decimal("30")

    def test_release_booking(self, repository, db, afternoon):
        assert repository.release_booking("WB-2505-0001") == 2
        db.commit()
        assert repository.get_by_reference("WB-2505-0001") == []

    def test_empty_id_list_touches_nothing(self, repository):
        assert repository.block_available([], "storm") == 0
        assert repository.delete_by_ids([]) == 0


class TestDeletes:
    def test_delete_by_reference(self, repository, db, afternoon):
        deleted = repository.delete_by_reference("WB-2505-0001")
        db.commit()

        assert deleted == [afternoon[2].id, afternoon[3].id]
        assert db.query(Slot).count() == 2

    def test_delete_unbooked_from(self, repository, db, afternoon):
        assert repository.delete_unbooked_from(afternoon[1].start_time) == 1
        db.commit()
        assert {slot.id for slot in db.query(Slot).all()} == {
            afternoon[0].id,
            afternoon[2].id,
            afternoon[3].id,
        }


class TestConstraints:
    def test_duplicate_start_is_rejected(self, repository, afternoon):
        with pytest.raises(RepositoryException, match="Integrity"):
            repository.create(
                start_time=afternoon[0].start_time,
                end_time=afternoon[0].end_time,
                price=Decimal("25"),
                status=SlotStatus.AVAILABLE.value,
            )

    def test_reference_only_when_booked(self, repository, afternoon):
        start = afternoon[-1].end_time
        with pytest.raises(RepositoryException):
            repository.create(
                start_time=start,
                end_time=start + timedelta(minutes=30),
                price=Decimal("25"),
                status=SlotStatus.AVAILABLE.value,
                booking_reference="WB-2505-0003",
            )
