import itertools
import math
import random

import pytest

from lingualens.config import FilterConfig
from lingualens.filtering import FrameFilter
from lingualens.knowledge import KnowledgeTables
from lingualens.types import RawDetection, iou

WIDTH, HEIGHT = 640, 480


def make_filter(**overrides) -> FrameFilter:
    return FrameFilter(KnowledgeTables.load(), config=FilterConfig(**overrides))


def det(label, bbox, score):
    return {"class": label, "bbox": list(bbox), "score": score}


def test_aspect_override_prefers_plausible_cup():
    raw = [
        det("cup", (100, 100, 40, 60), 0.6),
        det("bowl", (102, 101, 39, 58), 0.8),
    ]
    resolved = make_filter().filter(raw, WIDTH, HEIGHT)
    assert [d.label for d in resolved] == ["cup"]
    assert resolved[0].adjusted_score == pytest.approx(0.6)


def test_aspect_scoring_keeps_original_score():
    frame_filter = make_filter()
    bowl = frame_filter.score(RawDetection("bowl", (102.0, 101.0, 39.0, 58.0), 0.8))
    assert bowl.aspect_score == pytest.approx(0.3)
    assert bowl.adjusted_score == pytest.approx(0.24)
    assert bowl.orig_score == 0.8

    thin = frame_filter.score(RawDetection("cup", (10.0, 10.0, 0.0, 50.0), 0.95))
    assert thin.aspect_score == 0.5
    assert thin.adjusted_score == pytest.approx(0.475)


def test_nms_keeps_highest_scoring_overlap():
    raw = [
        det("person", (110, 60, 100, 250), 0.7),
        det("person", (100, 50, 100, 250), 0.9),
        det("person", (400, 50, 100, 250), 0.6),
    ]
    resolved = make_filter().filter(raw, WIDTH, HEIGHT)
    assert [(d.bbox[0], d.orig_score) for d in resolved] == [(100.0, 0.9), (400.0, 0.6)]


def test_nms_invariant_holds_for_cluttered_frame():
    rng = random.Random(7)
    raw = [
        det("teddy bear", (rng.uniform(0, 500), rng.uniform(0, 380), 80, 80), rng.uniform(0.5, 1.0))
        for _ in range(40)
    ]
    resolved = make_filter().filter(raw, WIDTH, HEIGHT)
    assert resolved
    for a, b in itertools.combinations(resolved, 2):
        assert iou(a.bbox, b.bbox) <= 0.35
    scores = [d.adjusted_score for d in resolved]
    assert scores == sorted(scores, reverse=True)


def test_score_floor_applies_to_adjusted_score():
    raw = [
        det("teddy bear", (0, 0, 80, 80), 0.44),
        det("teddy bear", (300, 0, 80, 80), 0.45),
    ]
    resolved = make_filter().filter(raw, WIDTH, HEIGHT)
    assert [d.bbox[0] for d in resolved] == [300.0]


def test_size_validation_rejects_implausible_boxes():
    raw = [
        det("cup", (0, 0, 400, 400), 0.9),
        det("widget", (500, 400, 1, 1), 0.9),
    ]
    resolved = make_filter().filter(raw, WIDTH, HEIGHT)
    assert [d.label for d in resolved] == ["widget"]


def test_confusion_resolution_only_within_group():
    raw = [
        det("knife", (0, 0, 90, 90), 0.7),
        det("scissors", (45, 0, 90, 90), 0.9),
        det("teddy bear", (300, 200, 90, 90), 0.8),
        det("potted plant", (345, 200, 90, 90), 0.6),
    ]
    resolved = make_filter().filter(raw, WIDTH, HEIGHT)
    assert [d.label for d in resolved] == ["scissors", "teddy bear", "potted plant"]


def test_malformed_items_are_dropped_individually():
    raw = [
        det("cup", (100, 100, 40, 60), 0.6),
        {"class": "cup", "bbox": [1, 2, 3], "score": 0.9},
        {"class": "cup", "bbox": None, "score": 0.9},
        det("bowl", (300, 300, 60, 30), math.nan),
        "not a detection",
        {"class": "cup", "bbox": [10**400, 0, 10, 10], "score": 0.9},
        {"class": "bowl", "bbox": "1234", "score": 0.9},
        RawDetection("teddy bear", (400.0, 0.0, 80.0, 80.0), 0.8),
    ]
    resolved = make_filter().filter(raw, WIDTH, HEIGHT)
    assert sorted(d.label for d in resolved) == ["cup", "teddy bear"]


def test_empty_frame_returns_empty_list():
    assert make_filter().filter([], WIDTH, HEIGHT) == []


@pytest.mark.parametrize("size", [(0, 480), (640, 0), (-1, 10)])
def test_invalid_frame_size_raises(size):
    with pytest.raises(ValueError):
        make_filter().filter([det("cup", (0, 0, 10, 10), 0.9)], *size)
