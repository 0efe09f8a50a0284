import pytest

from core.frame_pipeline import FramePipelineController
from tests.conftest import flush_events


@pytest.fixture
def pipeline(camera, processor, session, export_settings):
    return FramePipelineController(camera, processor, session, export_settings)


def test_frames_ignored_while_idle(pipeline, processor):
    pipeline.on_frame_available()
    assert processor.calls == []
    assert pipeline.stats.dropped == 0


def test_second_frame_dropped_while_first_in_flight(pipeline, processor, session):
    session.start()
    pipeline.on_frame_available()
    pipeline.on_frame_available()
    assert len(processor.calls) == 1
    assert pipeline.frame_in_flight


def test_three_frames_with_pending_callback_dispatch_once(pipeline, processor, session):
    session.start()
    for _ in range(3):
        pipeline.on_frame_available()
    assert len(processor.calls) == 1
    assert pipeline.stats.dispatched == 1
    assert pipeline.stats.dropped == 2


def test_next_frame_dispatched_after_callback(pipeline, processor, session):
    session.start()
    pipeline.on_frame_available()
    processor.complete()
    # result not yet marshaled: still in flight
    assert pipeline.frame_in_flight
    flush_events()
    assert not pipeline.frame_in_flight
    pipeline.on_frame_available()
    assert len(processor.calls) == 2


def test_result_displayed_and_recorded(pipeline, processor, session, sinks):
    shown = []
    pipeline.overlay_ready.connect(shown.append)
    session.start()
    pipeline.on_frame_available()
    processor.complete()
    flush_events()
    assert len(shown) == 1
    assert len(sinks[0].frames) == 1
    assert sinks[0].frames[0].shape == (8, 8, 3)
    assert pipeline.stats.completed == 1


def test_not_recorded_when_video_export_disabled_midway(pipeline, processor, session, sinks, export_settings):
    session.start()
    export_settings.video = False
    pipeline.on_frame_available()
    processor.complete()
    flush_events()
    assert sinks[0].frames == []


def test_stale_result_after_stop_is_discarded(pipeline, processor, session, sinks):
    shown = []
    pipeline.overlay_ready.connect(shown.append)
    session.start()
    pipeline.on_frame_available()
    session.stop()
    processor.complete()
    flush_events()
    assert shown == []
    assert sinks[0].frames == []
    assert pipeline.stats.stale == 1
    assert not pipeline.frame_in_flight


def test_result_from_previous_session_is_stale(pipeline, processor, session):
    shown = []
    pipeline.overlay_ready.connect(shown.append)
    session.start()
    pipeline.on_frame_available()
    session.stop()
    session.start()
    processor.complete(0)
    flush_events()
    assert shown == []
    assert pipeline.stats.stale == 1


def test_failed_processing_clears_flag(pipeline, processor, session):
    session.start()
    pipeline.on_frame_available()
    _, callback = processor.calls[0]
    callback(None, None)
    flush_events()
    assert not pipeline.frame_in_flight
    assert pipeline.stats.failed == 1
    pipeline.on_frame_available()
    assert len(processor.calls) == 2


def test_no_preview_frame_means_no_dispatch(pipeline, processor, session, camera):
    camera.frame = None
    session.start()
    pipeline.on_frame_available()
    assert processor.calls == []
    assert not pipeline.frame_in_flight


def test_dispatch_error_clears_flag(pipeline, processor, session):
    def broken(frame, callback):
        raise RuntimeError("processor gone")

    processor.process = broken
    session.start()
    pipeline.on_frame_available()
    assert not pipeline.frame_in_flight
    assert pipeline.stats.failed == 1


def test_reset_stats(pipeline, processor, session):
    session.start()
    pipeline.on_frame_available()
    pipeline.on_frame_available()
    pipeline.reset_stats()
    assert pipeline.stats.as_dict() == {
        "dispatched": 0, "dropped": 0, "completed": 0, "stale": 0, "failed": 0,
    }
