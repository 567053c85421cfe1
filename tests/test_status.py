"""Tests for the job status variant."""

import pytest

from fablecast.pipeline.status import JobStatus, Stage


def successful_sequence(sections):
    statuses = [JobStatus.queued(), JobStatus.planning()]
    for i in range(sections):
        statuses += [JobStatus.section_text(i), JobStatus.section_image(i), JobStatus.section_audio(i)]
    statuses.append(JobStatus.complete())
    return statuses


@pytest.mark.parametrize("sections", [1, 3, 7])
def test_success_path_is_strictly_increasing(sections):
    statuses = successful_sequence(sections)
    ranks = [s.rank() for s in statuses]
    assert ranks == sorted(ranks)
    assert len(set(ranks)) == len(ranks)


def test_later_section_outranks_earlier_audio():
    assert JobStatus.section_audio(0).precedes(JobStatus.section_text(1))
    assert not JobStatus.section_text(1).precedes(JobStatus.section_audio(0))
    assert JobStatus.section_audio(500).precedes(JobStatus.complete())


def test_error_has_no_rank():
    with pytest.raises(ValueError):
        JobStatus.error().rank()


def test_section_stages_require_an_index():
    with pytest.raises(ValueError):
        JobStatus(Stage.SECTION_TEXT)
    with pytest.raises(ValueError):
        JobStatus(Stage.SECTION_IMAGE, -1)
    with pytest.raises(ValueError):
        JobStatus(Stage.PLANNING, 0)


def test_fields_round_trip():
    for status in successful_sequence(2) + [JobStatus.error()]:
        fields = status.to_fields()
        assert JobStatus.from_fields(fields["status"], fields["status_section"]) == status


def test_fields_keep_index_in_its_own_column():
    assert JobStatus.section_image(3).to_fields() == {"status": "section_image", "status_section": 3}
    assert JobStatus.queued().to_fields() == {"status": "queued", "status_section": None}


def test_unknown_stage_is_rejected():
    with pytest.raises(ValueError):
        JobStatus.from_fields("section_text_3")


def test_labels():
    assert JobStatus.planning().label() == "plan"
    assert JobStatus.section_text(2).label() == "section 2 text"
    assert JobStatus.section_image(0).label() == "section 0 image"
    assert JobStatus.section_audio(4).label() == "section 4 audio"
    assert JobStatus.complete().label() == "complete"


def test_predicates():
    assert JobStatus.queued().is_queued
    assert JobStatus.section_audio(1).is_section_stage
    assert not JobStatus.planning().is_section_stage
    assert JobStatus.error().is_terminal
    assert JobStatus.complete().is_terminal


def test_to_dict():
    assert JobStatus.section_text(1).to_dict() == {"stage": "section_text", "sectionIndex": 1}
    assert JobStatus.complete().to_dict() == {"stage": "complete", "sectionIndex": None}
