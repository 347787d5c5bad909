"""
Tests for the bounding-box size filter and per-label centers.
"""

import random

import pytest

from detection.filter import DetectionFilter
from models.detection import BoundingBox, Detection

IMAGE_SIZE = (640, 480)


def det(label, x, y, w, h, confidence=0.9):
    return Detection(label=label, confidence=confidence, bbox=BoundingBox(x, y, w, h))


def assert_center(point, x, y):
    assert point.x == pytest.approx(x)
    assert point.y == pytest.approx(y)


def pixel_box(label, x_px, y_px, w_px, h_px, confidence=0.9, size=IMAGE_SIZE):
    """Build a detection from pixel values for the given image size."""
    width, height = size
    return det(label, x_px / width, y_px / height, w_px / width, h_px / height, confidence)


class TestDetectionFilter:
    def test_small_box_center(self):
        result = DetectionFilter().filter([det("Blue Ball", 0, 0, 0.1, 0.1)], IMAGE_SIZE)

        center = result.centers["Blue Ball"]
        assert center.x == pytest.approx(32)
        assert center.y == pytest.approx(24)
        assert center.as_int_tuple() == (32, 24)
        assert [d.label for d in result.detections] == ["Blue Ball"]

    def test_empty_input(self):
        result = DetectionFilter().filter([], IMAGE_SIZE)
        assert result.detections == []
        assert result.centers == {}

    def test_too_wide_box_excluded(self):
        result = DetectionFilter().filter([pixel_box("Red Ball", 10, 10, 100, 50)], IMAGE_SIZE)
        assert "Red Ball" not in result.centers
        assert result.detections == []

    def test_too_tall_box_excluded(self):
        result = DetectionFilter().filter([pixel_box("Red Ball", 10, 10, 50, 120)], IMAGE_SIZE)
        assert result.centers == {}

    def test_threshold_is_inclusive(self):
        # 0.5 * 180 is exactly 90 pixels
        result = DetectionFilter().filter([det("Orange Ball", 0, 0, 0.5, 0.5)], (180, 180))
        assert "Orange Ball" in result.centers

    def test_custom_thresholds(self):
        flt = DetectionFilter(max_width=200, max_height=200)
        result = flt.filter([pixel_box("Red Ball", 10, 10, 100, 50)], IMAGE_SIZE)
        assert "Red Ball" in result.centers

    def test_excluded_box_does_not_hide_valid_one(self):
        result = DetectionFilter().filter(
            [
                pixel_box("Blue Ball", 0, 0, 300, 300, confidence=0.99),
                pixel_box("Blue Ball", 100, 100, 20, 20, confidence=0.5),
            ],
            IMAGE_SIZE,
        )
        assert_center(result.centers["Blue Ball"], 110, 110)

    def test_multiple_labels(self):
        result = DetectionFilter().filter(
            [
                pixel_box("Blue Ball", 0, 0, 20, 20),
                pixel_box("Red Ball", 100, 100, 40, 40),
                pixel_box("Orange Ball", 300, 200, 10, 30),
            ],
            IMAGE_SIZE,
        )
        assert_center(result.centers["Blue Ball"], 10, 10)
        assert_center(result.centers["Red Ball"], 120, 120)
        assert_center(result.centers["Orange Ball"], 305, 215)
        assert [d.label for d in result.detections] == ["Blue Ball", "Red Ball", "Orange Ball"]


class TestDuplicateLabels:
    def test_highest_confidence_wins(self):
        low = pixel_box("Blue Ball", 0, 0, 20, 20, confidence=0.4)
        high = pixel_box("Blue Ball", 200, 200, 20, 20, confidence=0.8)

        for detections in ([low, high], [high, low]):
            result = DetectionFilter().filter(detections, IMAGE_SIZE)
            assert_center(result.centers["Blue Ball"], 210, 210)
            assert len(result.detections) == 1
            assert result.detections[0].confidence == 0.8

    def test_equal_confidence_keeps_first(self):
        first = pixel_box("Red Ball", 0, 0, 20, 20, confidence=0.7)
        second = pixel_box("Red Ball", 200, 200, 20, 20, confidence=0.7)
        result = DetectionFilter().filter([first, second], IMAGE_SIZE)
        assert_center(result.centers["Red Ball"], 10, 10)


class TestFilterProperties:
    def test_output_never_exceeds_threshold(self):
        rng = random.Random(1234)
        labels = ["Blue Ball", "Red Ball", "Orange Ball", "Other"]
        flt = DetectionFilter()

        for _ in range(200):
            detections = []
            for _ in range(rng.randint(0, 8)):
                w = rng.uniform(0.0, 0.5)
                h = rng.uniform(0.0, 0.5)
                detections.append(
                    det(rng.choice(labels), rng.uniform(0, 1 - w), rng.uniform(0, 1 - h), w, h,
                        confidence=rng.random())
                )
            result = flt.filter(detections, IMAGE_SIZE)

            for fd in result.detections:
                pw, ph = fd.bbox.pixel_size(IMAGE_SIZE)
                assert pw <= 90
                assert ph <= 90
            assert set(result.centers) == {fd.label for fd in result.detections}
