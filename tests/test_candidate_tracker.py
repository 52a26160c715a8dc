import pytest

from lingualens.config import TrackerConfig
from lingualens.filtering import ConfusionResolver
from lingualens.knowledge import KnowledgeTables
from lingualens.tracking import CandidateTracker
from lingualens.types import ConfirmedDetection, ScoredDetection

REGION = (100.0, 100.0, 60.0, 40.0)


def make_tracker(**overrides) -> CandidateTracker:
    resolver = ConfusionResolver(KnowledgeTables.load())
    return CandidateTracker(resolver, config=TrackerConfig(**overrides))


def scored(label, bbox, score, aspect=1.0) -> ScoredDetection:
    return ScoredDetection(
        label=label,
        bbox=bbox,
        adjusted_score=score * aspect,
        orig_score=score,
        aspect_score=aspect,
    )


def feed(tracker, detections, frames):
    outputs = []
    for _ in range(frames):
        outputs.append(tracker.update(list(detections)))
    return outputs


def test_confirmation_starts_on_eighth_frame():
    tracker = make_tracker()
    outputs = feed(tracker, [scored("cup", REGION, 0.7)], 8)
    assert all(out == [] for out in outputs[:7])
    assert outputs[7] == [ConfirmedDetection(label="cup", bbox=REGION, score=0.7, candidate_id=1)]


def test_confirmed_candidate_keeps_emitting():
    tracker = make_tracker()
    outputs = feed(tracker, [scored("cup", REGION, 0.7)], 10)
    assert [len(out) for out in outputs[7:]] == [1, 1, 1]


def test_decay_evicts_after_four_unmatched_frames():
    tracker = make_tracker()
    feed(tracker, [scored("cup", REGION, 0.7)], 8)
    assert tracker.candidates[0].streak == 8
    streaks = []
    for _ in range(3):
        tracker.update([])
        streaks.append(tracker.candidates[0].streak)
    assert streaks == [6, 4, 2]
    tracker.update([])
    assert len(tracker) == 0


def test_rematch_interrupts_decay():
    tracker = make_tracker()
    feed(tracker, [scored("cup", REGION, 0.7)], 8)
    tracker.update([])
    out = tracker.update([scored("cup", REGION, 0.7)])
    assert tracker.candidates[0].streak == 7
    assert out == []


def test_score_is_blended_and_bbox_follows_detection():
    tracker = make_tracker()
    tracker.update([scored("cup", REGION, 0.5)])
    moved = (104.0, 102.0, 60.0, 40.0)
    tracker.update([scored("cup", moved, 0.9)])
    candidate = tracker.candidates[0]
    assert candidate.score == pytest.approx(0.5 * 0.6 + 0.9 * 0.4)
    assert candidate.bbox == moved
    assert candidate.streak == 2


def test_locked_class_survives_weaker_challenger():
    tracker = make_tracker()
    feed(tracker, [scored("cup", REGION, 0.7)], 12)
    out = tracker.update([scored("bowl", REGION, 0.85)])
    assert len(out) == 1
    assert out[0].label == "cup"
    assert out[0].candidate_id == 1
    assert out[0].score == pytest.approx(0.7 * 0.7 + 0.3 * 0.85)
    assert len(tracker) == 1
    assert tracker.candidates[0].streak == 12


def test_decisive_challenger_breaks_lock():
    tracker = make_tracker()
    feed(tracker, [scored("cup", REGION, 0.5)], 12)
    out = tracker.update([scored("bowl", REGION, 0.95)])
    assert out == []
    labels = [(c.label, c.streak) for c in tracker.candidates]
    assert labels == [("cup", 10), ("bowl", 1)]


def test_unlocked_spatial_match_starts_new_candidate():
    tracker = make_tracker()
    feed(tracker, [scored("cup", REGION, 0.7)], 5)
    tracker.update([scored("bowl", REGION, 0.6)])
    assert [(c.label, c.streak) for c in tracker.candidates] == [("cup", 3), ("bowl", 1)]


def test_lowest_id_wins_among_spatial_matches():
    tracker = make_tracker()
    cup = scored("cup", REGION, 0.7)
    vase = scored("vase", (104.0, 100.0, 60.0, 40.0), 0.7)
    feed(tracker, [cup, vase], 12)
    assert [c.candidate_id for c in tracker.candidates] == [1, 2]

    out = tracker.update([scored("bowl", (102.0, 100.0, 60.0, 40.0), 0.5)])
    assert [(d.label, d.candidate_id) for d in out] == [("cup", 1)]
    assert [c.streak for c in tracker.candidates] == [12, 10]


def test_reset_clears_streaks_and_locks():
    tracker = make_tracker()
    feed(tracker, [scored("cup", REGION, 0.7)], 12)
    tracker.reset()
    assert len(tracker) == 0
    outputs = feed(tracker, [scored("cup", REGION, 0.7)], 8)
    assert all(out == [] for out in outputs[:7])
    assert [d.candidate_id for d in outputs[7]] == [2]


def test_custom_thresholds():
    tracker = make_tracker(confirm_frames=2, class_lock_frames=3, decay_rate=1)
    outputs = feed(tracker, [scored("mouse", REGION, 0.6)], 2)
    assert outputs[0] == []
    assert len(outputs[1]) == 1
    tracker.update([])
    assert tracker.candidates[0].streak == 1
