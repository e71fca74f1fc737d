import pytest

from posturepal.landmarks import COCO_LAYOUT, Landmark, LandmarkFrame
from posturepal.metrics import DegenerateFrameError, MetricExtractor, compute_raw_metrics
from posturepal.smoothing import SmoothingBuffer

from conftest import make_frame


class TestSmoothingBuffer:
    def test_converges_to_constant_input(self):
        buf = SmoothingBuffer(5)
        for _ in range(5):
            value = buf.push(0.37)
        assert value == pytest.approx(0.37)
        for _ in range(10):
            value = buf.push(0.37)
        assert value == pytest.approx(0.37)

    def test_mean_of_partial_window(self):
        buf = SmoothingBuffer(5)
        buf.push(1.0)
        assert buf.push(3.0) == pytest.approx(2.0)
        assert len(buf) == 2
        assert not buf.is_full

    def test_only_last_five_count(self):
        buf = SmoothingBuffer(5)
        for v in [100.0, 1.0, 2.0, 3.0, 4.0, 5.0]:
            result = buf.push(v)
        assert result == pytest.approx(3.0)
        assert buf.is_full

    def test_empty_mean_is_zero(self):
        assert SmoothingBuffer().mean() == 0.0

    def test_rejects_zero_size(self):
        with pytest.raises(ValueError):
            SmoothingBuffer(0)


class TestRawMetrics:
    def test_good_pose_values(self):
        raw, confidence = compute_raw_metrics(make_frame(visibility=0.6))
        assert raw.shoulder_slope == pytest.approx(0.0)
        assert raw.neck_offset == pytest.approx(0.0)
        assert raw.head_yaw == pytest.approx(0.0)
        assert raw.face_width == pytest.approx(0.15)
        assert raw.spinal_ratio == pytest.approx(0.25 / 0.15)
        assert confidence == pytest.approx(0.6)

    def test_offsets_are_absolute(self):
        raw, _ = compute_raw_metrics(
            make_frame(nose=(0.4, 0.25), left_shoulder=(0.35, 0.55), right_shoulder=(0.65, 0.5))
        )
        assert raw.shoulder_slope == pytest.approx(0.05)
        assert raw.neck_offset == pytest.approx(0.1)
        assert raw.head_yaw == pytest.approx(0.1)

    def test_zero_face_width_is_degenerate(self):
        with pytest.raises(DegenerateFrameError):
            compute_raw_metrics(make_frame(left_ear=(0.5, 0.3), right_ear=(0.5, 0.3)))

    def test_short_landmark_list_is_degenerate(self):
        frame = LandmarkFrame(points=tuple(Landmark(0.5, 0.5) for _ in range(10)))
        with pytest.raises(DegenerateFrameError):
            compute_raw_metrics(frame)

    def test_coco_layout(self):
        pts = [(0.5, 0.5, 0.0)] * 17
        pts[0] = (0.5, 0.2, 1.0)
        pts[3] = (0.42, 0.25, 1.0)
        pts[4] = (0.58, 0.25, 1.0)
        pts[5] = (0.3, 0.5, 1.0)
        pts[6] = (0.7, 0.5, 1.0)
        raw, confidence = compute_raw_metrics(LandmarkFrame.from_xyv(pts, layout=COCO_LAYOUT))
        assert raw.face_width == pytest.approx(0.16)
        assert raw.spinal_ratio == pytest.approx(0.3 / 0.16)
        assert confidence == pytest.approx(1.0)


class TestMetricExtractor:
    def test_current_frame_included_in_average(self):
        ext = MetricExtractor()
        ext.extract(make_frame())
        reading = ext.extract(make_frame(right_shoulder=(0.65, 0.6)))
        assert reading.raw.shoulder_slope == pytest.approx(0.1)
        assert reading.smoothed.shoulder_slope == pytest.approx(0.05)

    def test_degenerate_frame_does_not_touch_buffers(self):
        ext = MetricExtractor()
        ext.extract(make_frame())
        with pytest.raises(DegenerateFrameError):
            ext.extract(make_frame(left_ear=(0.5, 0.3), right_ear=(0.5, 0.3)))
        assert all(len(b) == 1 for b in ext.buffers.values())

    def test_clear_empties_every_channel(self):
        ext = MetricExtractor()
        for _ in range(3):
            ext.extract(make_frame())
        ext.clear()
        assert all(len(b) == 0 for b in ext.buffers.values())
