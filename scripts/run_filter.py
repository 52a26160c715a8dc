#!/usr/bin/env python3
"""CLI for running the detection filter over a video or a recorded detection log."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import pandas as pd
from tqdm import tqdm

from lingualens.config import PipelineConfig
from lingualens.io_utils import dumps_jsonl_record, ensure_dir, iter_jsonl, setup_logging
from lingualens.pipeline import DetectionPipeline
from lingualens.types import ConfirmedDetection

LOGGER = logging.getLogger("scripts.run_filter")

# (frame_idx, width, height, raw detections)
FrameRecord = Tuple[int, int, int, List[Any]]


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Stabilise detector output into confirmed detections")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--video", type=Path, default=None, help="Input video file")
    source.add_argument(
        "--detections-jsonl",
        type=Path,
        default=None,
        help="Replay recorded detections (one frame object per line)",
    )
    parser.add_argument("--weights", type=str, default=None, help="YOLO weights (required with --video)")
    parser.add_argument("--device", type=str, default=None, help="Inference device override")
    parser.add_argument("--det-conf", type=float, default=0.25, help="Detector confidence threshold")
    parser.add_argument(
        "--pipeline-config",
        type=Path,
        default=Path("configs/pipeline.yaml"),
        help="Pipeline configuration YAML",
    )
    parser.add_argument(
        "--class-dictionary",
        type=Path,
        default=None,
        help="Class dictionary YAML (defaults to the bundled COCO dictionary)",
    )
    parser.add_argument("--stride", type=int, default=1, help="Process every Nth frame")
    parser.add_argument(
        "--reset-every",
        type=int,
        default=0,
        help="Reset tracked identities every N processed frames (0 disables)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("data/outputs/confirmed.jsonl"),
        help="Output JSONL of confirmed detections per frame",
    )
    parser.add_argument("--summary-csv", type=Path, default=None, help="Optional per-class summary CSV")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def build_pipeline(args: argparse.Namespace) -> DetectionPipeline:
    if args.pipeline_config.exists():
        config = PipelineConfig.load(args.pipeline_config)
    else:
        LOGGER.warning("Pipeline config %s not found; using defaults", args.pipeline_config)
        config = PipelineConfig()
    if args.class_dictionary is not None:
        config.class_dictionary = args.class_dictionary
    return DetectionPipeline(config)


def iter_replay_frames(path: Path) -> Iterator[FrameRecord]:
    """Yield frames from a detection log, skipping lines that cannot be used."""
    for line_no, record in iter_jsonl(path):
        try:
            frame_idx = int(record.get("frame_idx", line_no - 1))
            width = int(record["width"])
            height = int(record["height"])
        except (KeyError, TypeError, ValueError) as exc:
            LOGGER.warning("Skipping %s:%d (bad frame header: %s)", path, line_no, exc)
            continue
        detections = record.get("detections") or []
        if not isinstance(detections, list):
            LOGGER.warning("Skipping %s:%d (detections must be a list)", path, line_no)
            continue
        yield frame_idx, width, height, detections


def iter_video_frames(args: argparse.Namespace, stride: int = 1) -> Iterator[FrameRecord]:
    """Decode the video, running the detector only on every ``stride``-th frame."""
    import cv2

    from lingualens.detectors.coco_yolo import YOLOObjectDetector

    if not args.weights:
        raise RuntimeError("--weights is required when reading from --video")
    detector = YOLOObjectDetector(weights=args.weights, device=args.device, conf_thres=args.det_conf)
    cap = cv2.VideoCapture(str(args.video))
    if not cap.isOpened():
        raise RuntimeError(f"Unable to open video {args.video}")
    width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
    height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
    LOGGER.info("Reading video=%s size=%dx%d", args.video, width, height)
    frame_idx = -1
    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            frame_idx += 1
            if frame_idx % stride != 0:
                continue
            frame_height, frame_width = frame.shape[:2]
            yield frame_idx, frame_width, frame_height, detector.detect(frame)
    finally:
        cap.release()


def run(
    pipeline: DetectionPipeline,
    frames: Iterator[FrameRecord],
    output_path: Path,
    stride: int = 1,
    reset_every: int = 0,
) -> List[Dict[str, Any]]:
    """Filter every ``stride``-th frame and write one JSONL line per processed frame."""
    if stride < 1:
        LOGGER.warning("Invalid stride %s requested; defaulting to 1", stride)
        stride = 1
    ensure_dir(output_path.parent)
    rows: List[Dict[str, Any]] = []
    processed = 0
    last_reset = 0
    with output_path.open("w", encoding="utf-8") as fh:
        for frame_idx, width, height, detections in tqdm(frames, desc="filter", unit="frame"):
            if frame_idx % stride != 0:
                continue
            if reset_every and processed and processed != last_reset and processed % reset_every == 0:
                LOGGER.info("Resetting tracker at frame %d", frame_idx)
                pipeline.reset()
                last_reset = processed
            try:
                confirmed = pipeline.filter(detections, width, height)
            except ValueError as exc:
                LOGGER.warning("Skipping frame %d: %s", frame_idx, exc)
                continue
            processed += 1
            fh.write(dumps_jsonl_record(_frame_payload(frame_idx, confirmed)) + "\n")
            for det in confirmed:
                rows.append({"frame_idx": frame_idx, **det.to_dict()})
    LOGGER.info("Processed %d frames -> %d confirmed detections (%s)", processed, len(rows), output_path)
    return rows


def summarize(rows: List[Dict[str, Any]]) -> pd.DataFrame:
    """Per-class confirmed frame counts and mean score."""
    columns = ["class", "frames", "first_frame", "last_frame", "mean_score"]
    if not rows:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame(rows)
    summary = (
        df.groupby("class")
        .agg(
            frames=("frame_idx", "nunique"),
            first_frame=("frame_idx", "min"),
            last_frame=("frame_idx", "max"),
            mean_score=("score", "mean"),
        )
        .reset_index()
        .sort_values(["frames", "class"], ascending=[False, True])
    )
    return summary[columns]


def _frame_payload(frame_idx: int, confirmed: List[ConfirmedDetection]) -> Dict[str, Any]:
    return {"frame_idx": frame_idx, "detections": [det.to_dict() for det in confirmed]}


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    pipeline = build_pipeline(args)
    if args.detections_jsonl is not None:
        frames = iter_replay_frames(args.detections_jsonl)
    else:
        frames = iter_video_frames(args, stride=max(1, args.stride))

    rows = run(pipeline, frames, args.output, stride=args.stride, reset_every=args.reset_every)
    if args.summary_csv is not None:
        ensure_dir(args.summary_csv.parent)
        summarize(rows).to_csv(args.summary_csv, index=False)
        LOGGER.info("Wrote summary CSV to %s", args.summary_csv)


if __name__ == "__main__":
    main()
