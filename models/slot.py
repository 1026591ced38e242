"""Slot-Katalog: geordnete Sicht auf das Tagesraster."""

from config.schema import SlotDefinition, SlotKind, TimeGridConfig


class SlotCatalog:
    """Unveränderliche Sicht auf die aktiven Slots eines Tages.

    Perioden (kind=Period) sind die Unterrichtsslots; ihre Position im Raster
    (1-basiert) ist der Perioden-Index, nach dem Halbtage geschnitten werden.
    """

    def __init__(self, slots: list[SlotDefinition], half_day_split: int = 4) -> None:
        self._slots = sorted(slots, key=lambda s: s.slot_number)
        self.half_day_split = half_day_split
        self._academic = [s for s in self._slots if s.is_academic]
        self._index = {s.slot_number: i + 1 for i, s in enumerate(self._academic)}

    @classmethod
    def from_time_grid(cls, tg: TimeGridConfig) -> "SlotCatalog":
        return cls(tg.slots, tg.half_day_split)

    @property
    def slots(self) -> list[SlotDefinition]:
        return list(self._slots)

    @property
    def academic_numbers(self) -> list[int]:
        return [s.slot_number for s in self._academic]

    @property
    def periods_per_day(self) -> int:
        return len(self._academic)

    def get(self, slot_number: int) -> SlotDefinition | None:
        return next((s for s in self._slots if s.slot_number == slot_number), None)

    def period_index(self, slot_number: int) -> int | None:
        """Position unter den Perioden (1..n) oder None für Pause/Appell."""
        return self._index.get(slot_number)

    def is_first_half(self, slot_number: int) -> bool:
        idx = self.period_index(slot_number)
        return idx is not None and idx <= self.half_day_split

    def is_second_half(self, slot_number: int) -> bool:
        idx = self.period_index(slot_number)
        return idx is not None and idx > self.half_day_split

    @property
    def double_pairs(self) -> list[tuple[int, int]]:
        """Aufeinanderfolgende Perioden-Paare.

        Ein Paar darf keine Pause/Appell überspannen: beide Slot-Nummern
        müssen direkt benachbart und beide Perioden sein.
        """
        pairs = []
        for first, second in zip(self._academic, self._academic[1:]):
            if second.slot_number == first.slot_number + 1:
                pairs.append((first.slot_number, second.slot_number))
        return pairs

    def partner_of(self, slot_number: int, previous: bool) -> int | None:
        """Nachbar-Slot einer Doppelstunde (vorher oder nachher), falls gültig."""
        for first, second in self.double_pairs:
            if previous and second == slot_number:
                return first
            if not previous and first == slot_number:
                return second
        return None

    def label(self, slot_number: int) -> str:
        s = self.get(slot_number)
        if s is None:
            return str(slot_number)
        return f"{s.start_time}–{s.end_time}"

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        return f"SlotCatalog({len(self._slots)} slots, {self.periods_per_day} periods)"


__all__ = ["SlotCatalog", "SlotDefinition", "SlotKind"]
