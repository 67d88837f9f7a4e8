import logging

from timetabler.models.subject import ClassType
from timetabler.services.catalog import InMemoryCatalog
from timetabler.services.materializer import CLASS_TYPE_COLORS, materialize, materialize_report
from timetabler.services.slots import SubjectSelection


def test_mandatory_sessions_are_always_included(sample_catalog):
    slots = materialize([SubjectSelection("cs101")], sample_catalog)

    assert [slot.offering_id for slot in slots] == ["cs-lec-1", "cs-lec-2", "cs-lab"]
    assert not any(slot.from_tutorial for slot in slots)


def test_only_the_chosen_tutorial_group_is_included(sample_catalog):
    slots = materialize([SubjectSelection("cs101", chosen_group_id="cs-tut-b")], sample_catalog)

    tutorials = [slot for slot in slots if slot.kind == ClassType.tutorial]
    assert [slot.offering_id for slot in tutorials] == ["cs-tut-b"]
    assert tutorials[0].from_tutorial is True
    assert tutorials[0].group_name == "Tutorial Group B"


def test_unknown_group_is_ignored(sample_catalog, caplog):
    with caplog.at_level(logging.WARNING, logger="timetabler.services.materializer"):
        slots = materialize([SubjectSelection("cs101", chosen_group_id="math-tut-a")], sample_catalog)

    assert len(slots) == 3
    assert "Chosen group math-tut-a not found" in caplog.text


def test_missing_subjects_are_skipped(sample_catalog):
    report = materialize_report(
        [SubjectSelection("ghost"), SubjectSelection("eng105")],
        sample_catalog,
    )

    assert report.missing_subject_ids == ["ghost"]
    assert [slot.subject_id for slot in report.slots] == ["eng105"]


def test_empty_catalog_yields_no_slots():
    assert materialize([SubjectSelection("cs101")], InMemoryCatalog()) == []


def test_selection_order_is_preserved(sample_catalog):
    slots = materialize([SubjectSelection("math201"), SubjectSelection("cs101")], sample_catalog)
    subjects = [slot.subject_id for slot in slots]
    assert subjects == ["math201", "math201", "cs101", "cs101", "cs101"]


def test_identifiers_are_fresh_on_every_call(sample_catalog):
    selections = [SubjectSelection("cs101", chosen_group_id="cs-tut-a")]
    first = materialize(selections, sample_catalog)
    second = materialize(selections, sample_catalog)

    assert {slot.id for slot in first}.isdisjoint({slot.id for slot in second})
    assert [slot.signature for slot in first] == [slot.signature for slot in second]


def test_slot_equality_is_by_identifier(sample_catalog):
    first = materialize([SubjectSelection("eng105")], sample_catalog)[0]
    second = materialize([SubjectSelection("eng105")], sample_catalog)[0]
    assert first != second
    assert first == first
    assert len({first, second}) == 2


def test_colors_follow_kind_unless_selection_overrides(sample_catalog):
    default = materialize([SubjectSelection("cs101")], sample_catalog)
    assert default[2].color == CLASS_TYPE_COLORS[ClassType.lab]

    custom = materialize([SubjectSelection("cs101", color="#112233")], sample_catalog)
    assert {slot.color for slot in custom} == {"#112233"}


def test_invalid_offerings_are_rejected_not_fatal(make_offering):
    catalog = InMemoryCatalog(
        [
            make_offering("cs101", start="25:00", end="26:00", offering_id="bad-hour"),
            make_offering("cs101", start="11:00", end="10:00", offering_id="backwards"),
            make_offering("cs101", start="09:00:00", end="10:30:00", offering_id="good"),
        ]
    )

    report = materialize_report([SubjectSelection("cs101")], catalog)

    assert [slot.offering_id for slot in report.slots] == ["good"]
    assert (report.slots[0].start_time, report.slots[0].end_time) == ("09:00", "10:30")
    assert [item.offering_id for item in report.rejected] == ["bad-hour", "backwards"]
    assert "Start time must precede end time" in report.rejected[1].reason


def test_id_factory_is_used(sample_catalog):
    ids = iter(["a", "b", "c"])
    slots = materialize([SubjectSelection("cs101")], sample_catalog, id_factory=lambda: next(ids))
    assert [slot.id for slot in slots] == ["a", "b", "c"]
