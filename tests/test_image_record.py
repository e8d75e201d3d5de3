import pytest
from pydantic import ValidationError

from plume.core.errors import InvalidTransitionError
from plume.models.image import ImageFormat, ImageRecord, ImageStatus


def make_record(**overrides) -> ImageRecord:
    data = {"id": "img_1", "name": "photo.png", "path": "/tmp/photo.png", "original_size": 1000}
    data.update(overrides)
    return ImageRecord(**data)


def test_new_record_is_pending_without_result():
    record = make_record()

    assert record.status == ImageStatus.pending
    assert record.compressed_size is None
    assert record.output_path is None
    assert record.savings is None


def test_success_path_sets_result_and_full_progress():
    record = make_record().to_processing(0).update_progress(40).to_completed(500, "/tmp/photo.webp")

    assert record.status == ImageStatus.completed
    assert record.progress == 100
    assert record.compressed_size == 500
    assert record.output_path == "/tmp/photo.webp"
    assert record.savings == pytest.approx(0.5)


def test_transitions_return_copies():
    pending = make_record()
    processing = pending.to_processing()

    assert pending.status == ImageStatus.pending
    assert processing.status == ImageStatus.processing


def test_error_path_leaves_no_result():
    record = make_record().to_processing().to_error()

    assert record.status == ImageStatus.error
    assert record.compressed_size is None
    assert record.output_path is None


@pytest.mark.parametrize(
    "transition",
    [
        lambda r: r.to_completed(1, "/out"),
        lambda r: r.to_error(),
        lambda r: r.reset_to_pending(),
    ],
)
def test_pending_record_rejects_non_start_transitions(transition):
    with pytest.raises(InvalidTransitionError):
        transition(make_record())


def test_terminal_record_cannot_restart():
    record = make_record().to_processing().to_error()

    with pytest.raises(InvalidTransitionError):
        record.to_processing()


def test_progress_is_clamped_while_processing():
    record = make_record().to_processing()

    assert record.update_progress(150).progress == 100
    assert record.update_progress(-5).progress == 0
    assert record.update_progress(42.6).progress == 43


def test_progress_ignored_outside_processing():
    pending = make_record()
    completed = pending.to_processing().to_completed(500, "/out")

    assert pending.update_progress(50) is pending
    assert completed.update_progress(10).progress == 100


def test_reset_to_pending_recovers_processing_record():
    record = make_record().to_processing().update_progress(70).reset_to_pending()

    assert record.status == ImageStatus.pending
    assert record.progress == 0


def test_validator_enforces_result_only_on_completed():
    with pytest.raises(ValidationError):
        make_record(status=ImageStatus.completed)
    with pytest.raises(ValidationError):
        make_record(status=ImageStatus.error, compressed_size=10, output_path="/out")


def test_savings_with_zero_original_size():
    record = make_record(original_size=0).to_processing().to_completed(10, "/out")
    assert record.savings == 0.0


def test_savings_serialised_with_record():
    record = make_record().to_processing().to_completed(250, "/out")
    assert record.model_dump()["savings"] == pytest.approx(0.75)


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("a.jpg", ImageFormat.jpeg),
        ("a.JPEG", ImageFormat.jpeg),
        ("a.png", ImageFormat.png),
        ("a.webp", ImageFormat.webp),
        ("a.heic", ImageFormat.heic),
        ("a.HEIF", ImageFormat.heic),
        ("a.gif", ImageFormat.other),
        ("noextension", ImageFormat.other),
    ],
)
def test_format_detection(filename, expected):
    assert ImageFormat.from_filename(filename) == expected
