'''
Slot generation for a single tutor day.

Everything here is pure: intervals are (start, end) pairs of timezone-aware
datetimes, half-open [start, end). The services gather rows from the database,
turn them into intervals and call build_day_slots() or build_rule_slots().
'''
import uuid
from datetime import date, datetime, timedelta
from typing import Iterable, Mapping, Sequence
from uuid import UUID

from ..models.availability import TimeSlot

Interval = tuple[datetime, datetime]
# (lesson length, break after each lesson)
Grid = tuple[timedelta, timedelta]

SLOT_NAMESPACE = uuid.UUID('8f3c2a52-6a3e-4b8e-9d55-3f4e0a7c1b20')


def overlaps(a: Interval, b: Interval) -> bool:
    """True when the two half-open intervals share any instant."""
    return a[0] < b[1] and b[0] < a[1]


def merge_intervals(intervals: Iterable[Interval]) -> list[Interval]:
    """
    Merges overlapping and touching intervals.
    Weekly rules for one day can overlap; merging them keeps a slot from
    being produced twice.
    """
    merged: list[Interval] = []
    for start, end in sorted(intervals):
        if start >= end:
            continue
        if merged and start <= merged[-1][1]:
            last_start, last_end = merged[-1]
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def subtract_intervals(windows: Iterable[Interval], blocks: Iterable[Interval]) -> list[Interval]:
    """Removes every block from the windows, returning the remaining pieces in order."""
    remaining = merge_intervals(windows)
    for block_start, block_end in merge_intervals(blocks):
        pieces: list[Interval] = []
        for start, end in remaining:
            if not overlaps((start, end), (block_start, block_end)):
                pieces.append((start, end))
                continue
            if start < block_start:
                pieces.append((start, block_start))
            if block_end < end:
                pieces.append((block_end, end))
        remaining = pieces
    return remaining


def partition(window: Interval, slot_length: timedelta, gap: timedelta = timedelta(0)) -> list[Interval]:
    """
    Cuts a window into fixed-length slots starting at the window start, each
    followed by a break of `gap` before the next one.
    A trailing remainder shorter than slot_length is dropped.
    """
    if slot_length <= timedelta(0):
        raise ValueError("slot_length must be positive.")
    if gap < timedelta(0):
        raise ValueError("gap cannot be negative.")
    slots: list[Interval] = []
    cursor, end = window
    while cursor + slot_length <= end:
        slots.append((cursor, cursor + slot_length))
        cursor += slot_length + gap
    return slots


def make_slot_id(tutor_id: UUID, slot: Interval) -> UUID:
    return uuid.uuid5(SLOT_NAMESPACE, f"{tutor_id}/{slot[0].isoformat()}/{slot[1].isoformat()}")


def build_day_slots(
    tutor_id: UUID,
    day: date,
    windows: Sequence[Interval],
    blocked: Sequence[Interval],
    occupied: Sequence[Interval],
    slot_length: timedelta,
    gap: timedelta = timedelta(0),
) -> list[TimeSlot]:
    """
    Produces the ordered slots of one day.

    windows:  available weekly-rule windows for the day
    blocked:  partial schedule exceptions, removed before partitioning
    occupied: non-cancelled lessons and pending requests; slots touching
              them are kept but marked unavailable
    gap:      break left between two consecutive slots of a window
    """
    usable = subtract_intervals(windows, blocked)
    busy = merge_intervals(occupied)

    slots: list[TimeSlot] = []
    for window in usable:
        for candidate in partition(window, slot_length, gap):
            is_free = not any(overlaps(candidate, taken) for taken in busy)
            slots.append(TimeSlot(
                slot_id=make_slot_id(tutor_id, candidate),
                date=day,
                start_time=candidate[0].time(),
                end_time=candidate[1].time(),
                starts_at=candidate[0],
                ends_at=candidate[1],
                is_available=is_free
            ))

    slots.sort(key=lambda s: s.starts_at)
    return slots


def build_rule_slots(
    tutor_id: UUID,
    day: date,
    windows_by_grid: Mapping[Grid, Sequence[Interval]],
    blocked: Sequence[Interval],
    occupied: Sequence[Interval],
) -> list[TimeSlot]:
    """
    build_day_slots() for rules that carry their own lesson and break length.
    Windows sharing a grid are merged together; a slot produced by two grids
    is kept once.
    """
    by_id: dict[UUID, TimeSlot] = {}
    for (slot_length, gap), windows in windows_by_grid.items():
        for slot in build_day_slots(tutor_id, day, windows, blocked, occupied, slot_length, gap):
            by_id.setdefault(slot.slot_id, slot)
    return sorted(by_id.values(), key=lambda s: (s.starts_at, s.ends_at))


def find_slot(slots: Sequence[TimeSlot], starts_at: datetime, ends_at: datetime) -> TimeSlot | None:
    """Returns the slot covering exactly [starts_at, ends_at), if any."""
    for slot in slots:
        if slot.starts_at == starts_at and slot.ends_at == ends_at:
            return slot
    return None
