import random

import numpy as np

from core.config import DEFAULT_PATH_COORDINATES
from core.session import SessionState


def test_starts_idle(session):
    assert session.state is SessionState.IDLE
    assert not session.is_processing
    assert not session.is_recording


def test_start_enables_processing_and_recording(session, processor, sinks):
    assert session.start() is True
    assert session.is_recording
    assert session.is_processing
    assert processor.resets == 1
    assert len(sinks) == 1
    assert (sinks[0].width, sinks[0].height) == (320, 240)
    assert session.video_sink is sinks[0]


def test_start_while_recording_is_noop(session, processor, sinks):
    session.start()
    assert session.start() is False
    assert processor.resets == 1
    assert len(sinks) == 1


def test_stop_while_idle_is_noop(session, handoff):
    assert session.stop() is None
    assert handoff.launched == []


def test_no_video_sink_when_video_export_disabled(session, export_settings, sinks):
    export_settings.video = False
    session.start()
    assert session.video_sink is None
    assert sinks == []


def test_state_never_recording_without_processing(session):
    rng = random.Random(7)
    for _ in range(200):
        if rng.random() < 0.5:
            session.start()
        else:
            session.stop()
        if session.is_recording:
            assert session.is_processing
        if session.state is SessionState.IDLE:
            assert not session.is_processing


def test_stop_releases_sink_once_before_snapshot(session, sinks, processor, events):
    processor.trace = np.zeros((28, 28, 4), dtype=np.uint8)
    session.start()
    session.stop()
    assert sinks[0].stop_calls == 1
    assert events.index("video_stop") < events.index("snapshot_save")
    assert session.video_sink is None
    assert session.state is SessionState.IDLE


def test_stop_emits_export_result(session, handoff):
    results = []
    session.exported.connect(results.append)
    session.start()
    session.stop()
    assert len(results) == 1
    assert results[0].coordinates == DEFAULT_PATH_COORDINATES
    assert handoff.launched == [(results[0].label, DEFAULT_PATH_COORDINATES)]


def test_state_changed_signals(session):
    states = []
    session.state_changed.connect(states.append)
    session.start()
    session.stop()
    assert states == [SessionState.RECORDING, SessionState.IDLE]


def test_switch_camera_stops_recording_first(session, camera, sinks, handoff):
    session.start()
    assert session.switch_camera() is True
    assert session.state is SessionState.IDLE
    assert sinks[0].stop_calls == 1
    assert len(handoff.launched) == 1
    assert camera.switches == 1


def test_switch_camera_while_idle_does_not_export(session, camera, handoff):
    session.switch_camera()
    assert camera.switches == 1
    assert handoff.launched == []


def test_session_id_increments_per_start(session):
    session.start()
    first = session.session_id
    session.stop()
    session.start()
    assert session.session_id == first + 1


def test_start_warns_when_tracking_model_missing(session):
    messages = []
    session.message.connect(messages.append)
    session.start()
    assert any("not loaded" in m for m in messages)


def test_shutdown_stops_running_session(session, handoff):
    session.start()
    session.shutdown()
    assert session.state is SessionState.IDLE
    assert len(handoff.launched) == 1
