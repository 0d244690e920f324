import numpy as np
import pytest

from motiontrack.tracking import (
    BoundingBox,
    Candidate,
    DetectionError,
    DetectorConfig,
    OnnxYoloDetector,
    candidate_score,
    decode_yolo_output,
    search_window,
    select_candidate,
)


class TestSearchWindow:
    def test_padding_on_all_sides(self):
        hint = BoundingBox(100, 100, 20, 20)
        assert search_window(hint, 320, 240, 50) == (50, 50, 170, 170)

    def test_clipped_to_image_bounds(self):
        hint = BoundingBox(10, 5, 20, 20)
        assert search_window(hint, 320, 240, 50) == (0, 0, 80, 75)

        hint = BoundingBox(290, 220, 20, 20)
        assert search_window(hint, 320, 240, 50) == (240, 170, 320, 240)

    def test_fractional_bounds_round_outward(self):
        hint = BoundingBox(10.5, 20.25, 5, 5)
        assert search_window(hint, 320, 240, 0) == (10, 20, 16, 26)

    def test_hint_outside_image_gives_empty_window(self):
        x0, y0, x1, y1 = search_window(BoundingBox(400, 300, 10, 10), 320, 240, 50)
        assert x1 <= x0 and y1 <= y0


class TestSelectCandidate:
    hint = BoundingBox(40, 40, 20, 20)  # center (50, 50)

    def test_threshold_is_strict(self):
        at_threshold = Candidate(self.hint, 0.25)
        assert select_candidate([at_threshold], self.hint) is None

        above = Candidate(self.hint, 0.26)
        assert select_candidate([at_threshold, above], self.hint) is above

    def test_empty_list(self):
        assert select_candidate([], self.hint) is None

    def test_proximity_beats_raw_confidence(self):
        near = Candidate(self.hint, 0.6)
        far = Candidate(self.hint.translated(200, 0), 0.9)
        assert candidate_score(far, self.hint) == pytest.approx(0.3)
        assert select_candidate([far, near], self.hint) is near

    def test_ties_keep_first_seen(self):
        right = Candidate(self.hint.translated(10, 0), 0.8)
        left = Candidate(self.hint.translated(-10, 0), 0.8)
        assert candidate_score(right, self.hint) == candidate_score(left, self.hint)
        assert select_candidate([right, left], self.hint) is right
        assert select_candidate([left, right], self.hint) is left

    def test_custom_distance_scale(self):
        cand = Candidate(self.hint.translated(50, 0), 0.8)
        assert candidate_score(cand, self.hint, distance_scale_px=50) == pytest.approx(0.4)


class TestDecodeYoloOutput:
    @staticmethod
    def _output() -> np.ndarray:
        out = np.zeros((1, 6, 3), dtype=np.float32)
        out[0, :, 0] = [320, 320, 64, 32, 0.1, 0.2]
        out[0, :, 1] = [160, 320, 32, 64, 0.9, 0.3]
        out[0, :, 2] = [480, 160, 64, 64, 0.1, 0.6]
        return out

    def test_rescales_to_region_and_drops_low_scores(self):
        cands = decode_yolo_output(
            self._output(),
            region_width_px=320,
            region_height_px=160,
            input_size=640,
            conf_threshold=0.25,
        )
        assert len(cands) == 2
        assert cands[0].box == BoundingBox(72, 72, 16, 16)
        assert cands[0].confidence == pytest.approx(0.9)
        assert cands[1].box == BoundingBox(224, 32, 32, 16)
        assert cands[1].confidence == pytest.approx(0.6)

    def test_class_filter(self):
        cands = decode_yolo_output(
            self._output(), 320, 160, 640, 0.25, class_ids=(0,)
        )
        assert len(cands) == 1
        assert cands[0].box == BoundingBox(72, 72, 16, 16)

    def test_class_filter_out_of_range(self):
        with pytest.raises(DetectionError):
            decode_yolo_output(self._output(), 320, 160, 640, 0.25, class_ids=(5,))

    def test_unexpected_shape(self):
        with pytest.raises(DetectionError):
            decode_yolo_output(np.zeros((1, 3, 5)), 320, 160, 640, 0.25)


class TestOnnxYoloDetector:
    def test_config_validation(self):
        with pytest.raises(DetectionError):
            DetectorConfig(model_path="m.onnx", input_size=0).validate()
        with pytest.raises(DetectionError):
            DetectorConfig(model_path="m.onnx", conf_threshold=1.5).validate()

    def test_missing_model_file(self, tmp_path):
        detector = OnnxYoloDetector(DetectorConfig(model_path=str(tmp_path / "none.onnx")))
        with pytest.raises(DetectionError):
            detector.open()

    def test_detect_requires_open(self):
        detector = OnnxYoloDetector(DetectorConfig(model_path="yolov8n.onnx"))
        region = np.zeros((10, 10, 3), dtype=np.uint8)
        with pytest.raises(DetectionError):
            detector.detect(region, BoundingBox(0, 0, 5, 5))
