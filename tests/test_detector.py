"""
Tests for the detector adapter and the Ultralytics backend mapping.
"""

import sys
import types
from types import SimpleNamespace

import numpy as np
import pytest

from detection.adapter import DetectorAdapter
from inference.cpu_backend import CpuYoloConfig, UltralyticsCpuBackend
from models.config import DetectionConfig
from models.detection import BoundingBox, Detection


class StaticBackend:
    """Backend returning the same detections for every frame."""

    def __init__(self, detections):
        self.detections = detections
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        return list(self.detections)


class FailingBackend:
    def detect(self, frame):
        raise RuntimeError("inference crashed")


def fake_results(xyxyn, conf, cls, names):
    boxes = SimpleNamespace(xyxyn=np.array(xyxyn), conf=np.array(conf), cls=np.array(cls))
    return [SimpleNamespace(names=names, boxes=boxes)]


@pytest.fixture
def fake_ultralytics(monkeypatch):
    """Install a stand-in `ultralytics` module whose YOLO returns canned results."""
    module = types.ModuleType("ultralytics")

    class FakeYOLO:
        instances = []
        results = []

        def __init__(self, model_path):
            self.model_path = model_path
            self.predict_kwargs = None
            FakeYOLO.instances.append(self)

        def predict(self, **kwargs):
            self.predict_kwargs = kwargs
            return FakeYOLO.results

    module.YOLO = FakeYOLO
    monkeypatch.setitem(sys.modules, "ultralytics", module)
    return FakeYOLO


class TestDetectorAdapter:
    def test_detect_before_load_is_noop(self):
        backend = StaticBackend([])
        adapter = DetectorAdapter(lambda: backend)
        assert adapter.detect(np.zeros((4, 4, 3), dtype=np.uint8)) == []
        assert backend.calls == 0
        assert not adapter.enabled

    def test_load_and_detect(self):
        det = Detection("Blue Ball", 0.9, BoundingBox(0, 0, 0.1, 0.1))
        adapter = DetectorAdapter(lambda: StaticBackend([det]))

        assert adapter.load() is True
        assert adapter.enabled
        assert adapter.detect(np.zeros((4, 4, 3), dtype=np.uint8)) == [det]

    def test_load_failure_disables_permanently(self):
        calls = []

        def factory():
            calls.append(1)
            raise FileNotFoundError("models/best.pt")

        adapter = DetectorAdapter(factory)
        assert adapter.load() is False
        assert adapter.load() is False
        assert len(calls) == 1
        assert not adapter.enabled
        assert "FileNotFoundError" in adapter.load_error
        assert adapter.detect(np.zeros((4, 4, 3), dtype=np.uint8)) == []

    def test_frame_error_yields_no_detections(self):
        adapter = DetectorAdapter(FailingBackend)
        adapter.load()
        assert adapter.detect(np.zeros((4, 4, 3), dtype=np.uint8)) == []
        assert adapter.enabled

    def test_detect_does_not_mutate_frame(self):
        frame = np.random.default_rng(0).integers(0, 255, (8, 8, 3), dtype=np.uint8)
        before = frame.copy()
        adapter = DetectorAdapter(lambda: StaticBackend([]))
        adapter.load()
        adapter.detect(frame)
        assert np.array_equal(frame, before)

    def test_from_config_uses_ultralytics(self, fake_ultralytics):
        cfg = DetectionConfig(model="weights/balls.pt", conf_threshold=0.5)
        adapter = DetectorAdapter.from_config(cfg)
        assert adapter.load() is True
        assert fake_ultralytics.instances[-1].model_path == "weights/balls.pt"


class TestUltralyticsCpuBackend:
    def test_maps_results_to_normalized_detections(self, fake_ultralytics):
        fake_ultralytics.results = fake_results(
            xyxyn=[[0.0, 0.0, 0.1, 0.1], [0.5, 0.5, 0.6, 0.7]],
            conf=[0.9, 0.6],
            cls=[0.0, 2.0],
            names={0: "Blue Ball", 1: "Red Ball", 2: "Orange Ball"},
        )
        backend = UltralyticsCpuBackend(CpuYoloConfig(model="best.pt", conf_threshold=0.3, iou_threshold=0.5))

        detections = backend.detect(np.zeros((480, 640, 3), dtype=np.uint8))

        assert [d.label for d in detections] == ["Blue Ball", "Orange Ball"]
        assert detections[0].confidence == pytest.approx(0.9)
        assert detections[0].bbox.width == pytest.approx(0.1)
        assert detections[1].bbox.x == pytest.approx(0.5)
        assert detections[1].bbox.height == pytest.approx(0.2)

        kwargs = fake_ultralytics.instances[-1].predict_kwargs
        assert kwargs["conf"] == 0.3
        assert kwargs["iou"] == 0.5
        assert kwargs["verbose"] is False

    def test_class_name_overrides(self, fake_ultralytics):
        fake_ultralytics.results = fake_results(
            xyxyn=[[0.1, 0.1, 0.2, 0.2]], conf=[0.8], cls=[0.0], names={0: "ball_blue"}
        )
        backend = UltralyticsCpuBackend(
            CpuYoloConfig(model="best.pt", class_name_overrides={0: "Blue Ball"})
        )
        assert backend.detect(np.zeros((10, 10, 3), dtype=np.uint8))[0].label == "Blue Ball"

    def test_unknown_class_uses_id(self, fake_ultralytics):
        fake_ultralytics.results = fake_results(
            xyxyn=[[0.1, 0.1, 0.2, 0.2]], conf=[0.8], cls=[7.0], names={}
        )
        backend = UltralyticsCpuBackend(CpuYoloConfig(model="best.pt"))
        assert backend.detect(np.zeros((10, 10, 3), dtype=np.uint8))[0].label == "7"

    def test_no_results(self, fake_ultralytics):
        fake_ultralytics.results = []
        backend = UltralyticsCpuBackend(CpuYoloConfig(model="best.pt"))
        assert backend.detect(np.zeros((10, 10, 3), dtype=np.uint8)) == []
