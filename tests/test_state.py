"""
Tests for the presentation store, frame overlays and the window viewer keys.
"""

import numpy as np

from models.detection import BoundingBox, Detection, FilteredDetection, Point
from pipeline.overlay import draw_detections, placeholder_frame, render
from viewer import WindowViewer
from web.state import PresentationState, PresentationStore


def blue_ball():
    det = Detection("Blue Ball", 0.87, BoundingBox(0.0, 0.0, 0.1, 0.1))
    return FilteredDetection(detection=det, center=Point(32.0, 24.0))


class TestPresentationStore:
    def test_initial_state(self):
        state = PresentationStore().latest()
        assert state.has_frame is False
        assert state.running is False
        assert state.recording is False
        assert state.detections == ()

    def test_publish_replaces_latest(self):
        store = PresentationStore()
        state = PresentationState(running=True, frame_index=4)
        store.publish(state)
        assert store.latest() is state

    def test_update_keeps_other_fields(self):
        store = PresentationStore()
        store.publish(PresentationState(running=True, csv_path="output/a.csv"))

        updated = store.update(recording=True)

        assert updated.recording is True
        assert updated.running is True
        assert updated.csv_path == "output/a.csv"
        assert store.latest() is updated

    def test_subscribe_and_unsubscribe(self):
        store = PresentationStore()
        seen = []
        unsubscribe = store.subscribe(seen.append)

        store.update(running=True)
        unsubscribe()
        store.update(running=False)

        assert len(seen) == 1
        assert seen[0].running is True

    def test_subscriber_error_does_not_block_others(self):
        store = PresentationStore()
        seen = []

        def broken(state):
            raise ValueError("viewer crashed")

        store.subscribe(broken)
        store.subscribe(seen.append)
        store.update(recording=True)

        assert len(seen) == 1
        assert store.latest().recording is True


class TestOverlay:
    def test_draw_detections_returns_copy(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)

        out = draw_detections(frame, [blue_ball()])

        assert out is not frame
        assert not frame.any()
        assert out.any()
        # left box edge, below the caption
        assert tuple(out[40, 0]) == (0, 255, 0)

    def test_no_detections_leaves_image_unchanged(self):
        frame = np.full((100, 100, 3), 7, dtype=np.uint8)
        assert np.array_equal(draw_detections(frame, []), frame)

    def test_placeholder_frame(self):
        frame = placeholder_frame((320, 240))
        assert frame.shape == (240, 320, 3)
        assert frame.any()

    def test_render_without_frame(self):
        image = render(PresentationState())
        assert image.shape == (480, 640, 3)

    def test_render_does_not_touch_published_frame(self):
        frame = np.zeros((120, 160, 3), dtype=np.uint8)
        render(PresentationState(frame=frame, detections=(blue_ball(),), recording=True, frame_index=3))
        assert not frame.any()


class MockController:
    def __init__(self):
        self.toggles = 0

    def toggle_recording(self):
        self.toggles += 1
        return self.toggles % 2 == 1


class TestWindowViewer:
    def test_r_toggles_recording(self):
        controller = MockController()
        viewer = WindowViewer(PresentationStore(), controller)

        assert viewer.handle_key(ord("r")) is True
        assert viewer.handle_key(ord("r")) is True
        assert controller.toggles == 2

    def test_q_quits(self):
        controller = MockController()
        viewer = WindowViewer(PresentationStore(), controller)

        assert viewer.handle_key(ord("q")) is False
        assert controller.toggles == 0

    def test_other_keys_ignored(self):
        controller = MockController()
        viewer = WindowViewer(PresentationStore(), controller)

        assert viewer.handle_key(ord("x")) is True
        assert controller.toggles == 0
