import pytest

from pedspeed.inputs.video_input import VideoInput


def test_video_input_configures_path_without_opening():
    vi = VideoInput("/tmp/video.mp4", allow_missing=True)
    assert str(vi.path) == "/tmp/video.mp4"


def test_missing_video_is_inert():
    vi = VideoInput("/tmp/does_not_exist_pedspeed.mp4", allow_missing=True, frame_rate=25.0)
    assert vi.meta is None
    assert vi.fps == 25.0
    assert list(vi.frames()) == []


def test_invalid_stride_rejected():
    with pytest.raises(ValueError):
        VideoInput("/tmp/video.mp4", allow_missing=True, stride=0)


def test_missing_video_raises_without_allow_missing():
    pytest.importorskip("cv2")
    with pytest.raises(FileNotFoundError):
        VideoInput("/tmp/does_not_exist_pedspeed.mp4")


def test_context_manager_stops_input():
    with VideoInput("/tmp/does_not_exist_pedspeed.mp4", allow_missing=True, max_frames=4) as vin:
        assert vin.expected_frames == 4
    assert vin.cap is None
