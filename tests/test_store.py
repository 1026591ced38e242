"""Tests für Speicher (InMemory/JSON), Benachrichtigungen und Testdaten."""

import asyncio
from datetime import date
from pathlib import Path

import pytest

from config.defaults import default_engine_config
from data.fake_data import CLASS_SLACK, FakeDataGenerator
from engine.capacity import weekly_capacity
from engine.errors import PersistenceError
from engine.locks import KeyedLocks, class_key, teacher_key
from engine.service import SchedulingEngine
from models.assignment import Assignment
from models.schedule import ScheduleEntry
from models.school_class import SchoolClass
from models.slot import SlotCatalog
from models.teacher import Teacher
from models.term import Term
from store.interfaces import DirectoryService, NotificationChannel, SchedulePersistence
from store.json_store import JsonFileStore
from store.memory import InMemoryStore, StoreSnapshot
from store.notifications import OutboxChannel

REF = date(2026, 10, 19)


def _assignment(quota: int = 5) -> Assignment:
    return Assignment(teacher_id="per", subject="English", class_id="6A",
                      term_id="T1", remaining_quota=quota)


def _entry(class_id: str = "6A", term_id: str = "T1", slot: int = 2) -> ScheduleEntry:
    return ScheduleEntry(class_id=class_id, term_id=term_id, day=0, slot_number=slot,
                         subject="English", teacher_id="PER")


@pytest.fixture(scope="module")
def fake_snapshot() -> StoreSnapshot:
    return FakeDataGenerator(default_engine_config(), seed=42, reference_date=REF).generate()


# ─── IN-MEMORY ────────────────────────────────────────────────────────────────

class TestInMemoryStore:
    def test_implements_protocols(self):
        store = InMemoryStore()
        assert isinstance(store, DirectoryService)
        assert isinstance(store, SchedulePersistence)
        assert isinstance(OutboxChannel(), NotificationChannel)

    def test_save_increments_version(self):
        store = InMemoryStore()
        first = asyncio.run(store.save_assignment(_assignment()))
        assert first.version == 1
        second = asyncio.run(store.save_assignment(first.model_copy(update={"remaining_quota": 4})))
        assert second.version == 2

    def test_version_conflict(self):
        store = InMemoryStore()
        asyncio.run(store.save_assignment(_assignment()))
        with pytest.raises(PersistenceError):
            asyncio.run(store.save_assignment(_assignment(3)))

    def test_reads_return_copies(self):
        store = InMemoryStore()
        asyncio.run(store.save_assignment(_assignment()))
        loaded = asyncio.run(store.list_assignments())[0]
        loaded.remaining_quota = 0
        assert asyncio.run(store.list_assignments())[0].remaining_quota == 5

    def test_replace_only_own_class_and_term(self):
        store = InMemoryStore(StoreSnapshot(entries=[
            _entry(), _entry(slot=3), _entry(class_id="6B"), _entry(term_id="T2"),
        ]))
        asyncio.run(store.replace_class_schedule("6A", "T1", [_entry(slot=9)]))
        remaining = asyncio.run(store.list_entries())
        assert sorted((e.class_id, e.term_id, e.slot_number) for e in remaining) == [
            ("6A", "T1", 9), ("6A", "T2", 2), ("6B", "T1", 2)]

    def test_replace_rejects_foreign_entries(self):
        store = InMemoryStore(StoreSnapshot(entries=[_entry()]))
        with pytest.raises(PersistenceError):
            asyncio.run(store.replace_class_schedule("6A", "T1", [_entry(class_id="6B")]))
        assert len(asyncio.run(store.list_entries())) == 1

    def test_apply_decay_releases_matching_entries(self):
        store = InMemoryStore(StoreSnapshot(entries=[_entry(), _entry(slot=3)]))
        saved = asyncio.run(store.save_assignment(_assignment()))
        released = asyncio.run(store.apply_decay(
            saved.model_copy(update={"remaining_quota": 0}), release_entries=True))
        assert released == 2
        assert asyncio.run(store.list_entries()) == []

    def test_teacher_lookup_case_insensitive(self):
        store = InMemoryStore()
        store.add_teacher(Teacher(id="PER", name="Perera"))
        assert asyncio.run(store.get_teacher("per")) is not None
        assert asyncio.run(store.list_teachers(role="admin")) == []


# ─── JSON-DATEI ───────────────────────────────────────────────────────────────

class TestJsonFileStore:
    def test_changes_are_persisted(self, tmp_path: Path):
        path = tmp_path / "state.json"
        store = JsonFileStore(path)
        store.add_teacher(Teacher(id="PER", name="Perera"))
        asyncio.run(store.save_assignment(_assignment()))
        assert path.exists()

        reopened = JsonFileStore(path)
        assert asyncio.run(reopened.get_teacher("PER")).name == "Perera"
        assert asyncio.run(reopened.list_assignments())[0].version == 1

    def test_invalid_file_raises(self, tmp_path: Path):
        path = tmp_path / "state.json"
        path.write_text("{kaputt", encoding="utf-8")
        with pytest.raises(PersistenceError):
            JsonFileStore(path)

    def test_snapshot_roundtrip(self, tmp_path: Path, fake_snapshot: StoreSnapshot):
        path = tmp_path / "snap.json"
        fake_snapshot.save_json(path)
        assert StoreSnapshot.load_json(path) == fake_snapshot

    def test_load_missing_snapshot_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            StoreSnapshot.load_json(tmp_path / "missing.json")


# ─── BENACHRICHTIGUNGEN ───────────────────────────────────────────────────────

class TestOutboxChannel:
    def test_collects_messages(self):
        outbox = OutboxChannel()
        asyncio.run(outbox.send("adm", {"kind": "course_completed"}))
        asyncio.run(outbox.send("PER", {"kind": "replacement_request"}))
        assert len(outbox) == 2
        assert outbox.to("ADM")[0].kind == "course_completed"
        assert len(outbox.of_kind("replacement_request")) == 1
        outbox.clear()
        assert len(outbox) == 0


# ─── TESTDATEN ────────────────────────────────────────────────────────────────

class TestFakeData:
    def test_deterministic_with_seed(self, fake_snapshot: StoreSnapshot):
        again = FakeDataGenerator(default_engine_config(), seed=42, reference_date=REF).generate()
        assert again == fake_snapshot

    def test_classes_and_term(self, fake_snapshot: StoreSnapshot):
        assert [c.id for c in fake_snapshot.classes] == ["6A", "6B", "7A", "7B", "8A", "8B"]
        term = fake_snapshot.terms[0]
        assert term.is_active
        assert term.contains(REF)

    def test_class_budget_fits_week(self, fake_snapshot: StoreSnapshot):
        catalog = SlotCatalog.from_time_grid(default_engine_config().time_grid)
        budget = weekly_capacity(catalog) - CLASS_SLACK
        for c in fake_snapshot.classes:
            total = sum(a.remaining_quota for a in fake_snapshot.assignments if a.class_id == c.id)
            assert 0 < total <= budget, c.id

    def test_one_language_per_class(self, fake_snapshot: StoreSnapshot):
        for c in fake_snapshot.classes:
            subjects = {a.subject for a in fake_snapshot.assignments if a.class_id == c.id}
            assert len(subjects & {"Tamil", "Sinhala"}) == 1, c.id

    def test_assigned_teachers_exist(self, fake_snapshot: StoreSnapshot):
        ids = {t.id for t in fake_snapshot.teachers}
        assert len(ids) == len(fake_snapshot.teachers)
        assert {a.teacher_id for a in fake_snapshot.assignments} <= ids
        assert any(t.is_admin for t in fake_snapshot.teachers)

    def test_absences(self, fake_snapshot: StoreSnapshot):
        by_id = {a.id: a for a in fake_snapshot.absences}
        assert by_id["ABS-1"].approved
        assert not by_id["ABS-2"].approved
        assert by_id["ABS-1"].start_date.weekday() < 5

    def test_generate_all_without_conflicts(self, fake_snapshot: StoreSnapshot):
        """Alle Klassen generieren → keine Doppelbelegung im Gesamtplan."""
        store = InMemoryStore(fake_snapshot.model_copy(deep=True))
        engine = SchedulingEngine(store, store, OutboxChannel())

        async def run():
            for c in await store.list_classes():
                await engine.generate_timetable(c.id, c.term_id)
            return await engine.validate_all()

        assert asyncio.run(run()) == []
        assert len(asyncio.run(store.list_entries())) > 0


# ─── SPERREN ──────────────────────────────────────────────────────────────────

class TestKeyedLocks:
    def test_hold_and_release(self):
        locks = KeyedLocks()

        async def run():
            async with locks.hold(class_key("6A"), teacher_key("PER")):
                inside = (locks.is_locked("class:6A"), locks.is_locked("teacher:PER"))
            return inside, locks.is_locked("class:6A")

        inside, after = asyncio.run(run())
        assert inside == (True, True)
        assert after is False

    def test_overlapping_keys_serialize(self):
        """Zwei Aufrufer mit überlappenden Schlüsseln laufen nacheinander."""
        locks = KeyedLocks()
        order: list[str] = []

        async def worker(name: str, *keys: str):
            async with locks.hold(*keys):
                order.append(f"{name}+")
                await asyncio.sleep(0)
                order.append(f"{name}-")

        async def run():
            await asyncio.gather(
                worker("a", class_key("6A"), teacher_key("PER")),
                worker("b", teacher_key("PER"), class_key("6A")),
            )

        asyncio.run(run())
        assert order in (["a+", "a-", "b+", "b-"], ["b+", "b-", "a+", "a-"])

    def test_seed_methods(self):
        store = InMemoryStore()
        store.add_class(SchoolClass(id="6A", name="Grade 6 A", grade=6, section="A",
                                    term_id="T1"))
        store.add_term(Term(id="T1", number=1, start_date=REF, end_date=REF))
        store.add_entries([_entry(), _entry(slot=3)])
        assert asyncio.run(store.get_class("6A")).grade == 6
        assert asyncio.run(store.get_term("T1")).is_active
        assert len(asyncio.run(store.list_entries(class_id="6A", day=0))) == 2
