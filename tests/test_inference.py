import numpy as np
import pytest

from core import config
from core.inference import (
    ClassificationMode,
    InferenceCoordinator,
    ModelUnavailableError,
    argmax_label,
    pack_input,
    to_grayscale,
)
from tests.conftest import FakeInterpreter


def _gray_bgra(values, side):
    gray = np.array(values, dtype=np.uint8).reshape(side, side)
    bgra = np.stack([gray, gray, gray, np.full_like(gray, 255)], axis=-1)
    return bgra


def test_mode_defaults_to_letter():
    mode = ClassificationMode()
    assert mode.is_letter and not mode.is_digit


@pytest.mark.parametrize("toggles", range(6))
def test_mode_toggle_is_complementary(toggles):
    mode = ClassificationMode()
    for _ in range(toggles):
        mode.toggle()
    assert mode.is_letter != mode.is_digit
    assert mode.is_letter == (toggles % 2 == 0)


def test_mode_setters_keep_complement():
    mode = ClassificationMode()
    mode.is_digit = True
    assert not mode.is_letter
    mode.is_letter = True
    assert not mode.is_digit
    assert mode.label == "Letter"


def test_pack_input_red_channel_row_major():
    bitmap = _gray_bgra([0, 255, 128, 64], 2)
    packed = pack_input(bitmap)
    assert packed.dtype == np.float32
    np.testing.assert_allclose(packed, [0.0, 1.0, 0.502, 0.251], atol=1e-3)


def test_grayscale_keeps_four_channels_and_gray_values():
    bitmap = _gray_bgra([0, 255, 128, 64], 2)
    gray = to_grayscale(bitmap)
    assert gray.shape == (2, 2, 4)
    np.testing.assert_allclose(pack_input(gray), [0.0, 1.0, 0.502, 0.251], atol=1e-3)


def test_grayscale_equalizes_channels():
    bitmap = np.zeros((3, 3, 4), dtype=np.uint8)
    bitmap[..., 2] = 200  # pure red
    gray = to_grayscale(bitmap)
    assert np.all(gray[..., 0] == gray[..., 1])
    assert np.all(gray[..., 1] == gray[..., 2])


def test_argmax_first_maximum_wins():
    assert argmax_label([0.2, 0.9, 0.9, 0.1]) == "1"
    assert argmax_label([[0.0, 0.1, 0.7]]) == "2"


def test_letter_mode_returns_fixed_label():
    coordinator = InferenceCoordinator(lambda: None)
    assert coordinator.classify() == config.LETTER_MODE_LABEL


def test_digit_mode_without_trace_is_error():
    coordinator = InferenceCoordinator(lambda: None)
    coordinator.mode.toggle()
    coordinator.set_interpreter(FakeInterpreter())
    assert coordinator.classify() == config.INFERENCE_ERROR_LABEL


def test_digit_mode_without_model_is_error():
    trace = np.zeros((28, 28, 4), dtype=np.uint8)
    coordinator = InferenceCoordinator(lambda: trace)
    coordinator.mode.toggle()
    assert coordinator.classify() == config.INFERENCE_ERROR_LABEL


def test_run_without_model_fails_fast():
    coordinator = InferenceCoordinator()
    with pytest.raises(ModelUnavailableError):
        coordinator.run_digit_model(np.zeros(784, dtype=np.float32))


def test_digit_mode_runs_model():
    trace = np.zeros((28, 28, 4), dtype=np.uint8)
    trace[10:18, 13:15, :3] = 255
    scores = [0.0] * 10
    scores[7] = 0.8
    interpreter = FakeInterpreter(scores=scores)
    coordinator = InferenceCoordinator(lambda: trace)
    coordinator.mode.is_digit = True
    coordinator.set_interpreter(interpreter)
    assert coordinator.classify() == "7"
    fed = interpreter.inputs[0]
    assert fed.shape == (1, 28, 28, 1)
    assert fed.dtype == np.float32
    assert fed.max() == pytest.approx(1.0)
    assert interpreter.invocations == 1


def test_interpreter_failure_is_error():
    class Broken(FakeInterpreter):
        def invoke(self):
            raise RuntimeError("bad model")

    coordinator = InferenceCoordinator(lambda: np.zeros((28, 28, 4), dtype=np.uint8))
    coordinator.mode.toggle()
    coordinator.set_interpreter(Broken())
    assert coordinator.classify() == config.INFERENCE_ERROR_LABEL
