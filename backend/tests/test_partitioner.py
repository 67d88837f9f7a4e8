import random

import pytest

from timetabler.models.subject import ClassType
from timetabler.services.catalog import InMemoryCatalog
from timetabler.services.materializer import materialize
from timetabler.services.overlap import overlaps
from timetabler.services.partitioner import partition
from timetabler.services.slots import ClashKind, SubjectSelection


def _selections(*subject_ids):
    return [SubjectSelection(subject_id) for subject_id in subject_ids]


def test_same_venue_overlap_excludes_both(make_offering):
    catalog = InMemoryCatalog(
        [
            make_offering("s1", day=1, start="09:00", end="10:30", venue="Hall 1"),
            make_offering("s2", day=1, start="10:00", end="11:30", venue="Hall 1"),
        ]
    )
    displayed, unplaced, clashes = partition(materialize(_selections("s1", "s2"), catalog))

    assert displayed == []
    assert [slot.subject_id for slot in unplaced] == ["s1", "s2"]
    assert [clash.kind for clash in clashes] == [ClashKind.venue]


def test_different_venues_produce_a_time_clash(make_offering):
    catalog = InMemoryCatalog(
        [
            make_offering("s1", day=1, start="09:00", end="10:30", venue="Hall 1"),
            make_offering("s2", day=1, start="10:00", end="11:30", venue="Hall 2"),
        ]
    )
    result = partition(materialize(_selections("s1", "s2"), catalog))
    assert [clash.kind for clash in result.clashes] == [ClashKind.time]
    assert len(result.unplaced) == 2


def test_different_days_are_both_displayed(make_offering):
    catalog = InMemoryCatalog(
        [
            make_offering("s1", day=1, venue="Hall 1"),
            make_offering("s2", day=2, venue="Hall 1"),
        ]
    )
    result = partition(materialize(_selections("s1", "s2"), catalog))
    assert result.clashes == []
    assert len(result.displayed) == 2
    assert result.unplaced == []


def test_three_way_overlap_unplaces_everything(make_offering):
    catalog = InMemoryCatalog(
        [make_offering(subject, day=1, start="09:00", end="10:00", venue="Hall 1") for subject in ("a", "b", "c")]
    )
    result = partition(materialize(_selections("a", "b", "c"), catalog))
    assert len(result.clashes) == 3
    assert len(result.unplaced) == 3
    assert result.displayed == []


def test_partition_is_complete_and_conservative(sample_catalog):
    slots = materialize(
        [
            SubjectSelection("cs101", chosen_group_id="cs-tut-a"),
            SubjectSelection("math201", chosen_group_id="math-tut-a"),
            SubjectSelection("eng105", chosen_group_id="eng-tut-a"),
        ],
        sample_catalog,
    )
    displayed, unplaced, clashes = partition(slots)

    displayed_ids = {slot.id for slot in displayed}
    unplaced_ids = {slot.id for slot in unplaced}
    assert displayed_ids | unplaced_ids == {slot.id for slot in slots}
    assert displayed_ids.isdisjoint(unplaced_ids)
    for clash in clashes:
        assert clash.slot_ids <= unplaced_ids
    assert {slot.offering_id for slot in unplaced} == {"cs-lec-1", "math-lec-1", "cs-tut-a", "eng-tut-a"}


def test_non_clashing_slots_keep_selection_order(sample_catalog):
    slots = materialize(_selections("eng105", "cs101"), sample_catalog)
    result = partition(slots)
    assert [slot.id for slot in result.displayed] == [slot.id for slot in slots]
    assert all(slot.kind != ClassType.tutorial for slot in result.displayed)


def test_empty_input():
    assert partition([]) == ([], [], [])


def _random_offerings(rng, make_offering):
    offerings = []
    for index in range(rng.randint(1, 12)):
        start = rng.randrange(8 * 60, 17 * 60, 15)
        end = start + rng.choice((30, 45, 60, 90, 120))
        offerings.append(
            make_offering(
                f"s{rng.randint(1, 5)}",
                day=rng.randint(0, 6),
                start=f"{start // 60:02d}:{start % 60:02d}",
                end=f"{end // 60:02d}:{end % 60:02d}",
                venue=rng.choice(("Hall 1", "Hall 2", "")),
                offering_id=f"rand-{index}",
            )
        )
    return offerings


@pytest.mark.parametrize("seed", range(25))
def test_random_partitions_are_complete_and_conservative(seed, make_offering):
    rng = random.Random(seed)
    offerings = _random_offerings(rng, make_offering)
    subject_ids = sorted({offering.subject_id for offering in offerings})
    slots = materialize(_selections(*subject_ids), InMemoryCatalog(offerings))
    displayed, unplaced, clashes = partition(slots)

    displayed_ids = [slot.id for slot in displayed]
    unplaced_ids = [slot.id for slot in unplaced]
    assert sorted(displayed_ids + unplaced_ids) == sorted(slot.id for slot in slots)
    assert set(displayed_ids).isdisjoint(unplaced_ids)
    for clash in clashes:
        assert clash.first_subject_id != clash.second_subject_id
        assert clash.slot_ids.isdisjoint(displayed_ids)

    # Every cross-subject overlap is reported, and overlap is symmetric.
    pairs = {clash.slot_ids for clash in clashes}
    for i, a in enumerate(slots):
        for b in slots[i + 1:]:
            forward = overlaps(a.day_of_week, a.start_minute, a.end_minute, b.day_of_week, b.start_minute, b.end_minute)
            backward = overlaps(b.day_of_week, b.start_minute, b.end_minute, a.day_of_week, a.start_minute, a.end_minute)
            assert forward == backward
            expected = forward and a.subject_id != b.subject_id
            assert (frozenset((a.id, b.id)) in pairs) == expected
