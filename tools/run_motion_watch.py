from __future__ import annotations

import argparse
import logging
import os
import time
from pathlib import Path
from typing import List, Optional

from analysis.motion.engine import MotionEngine
from analysis.motion.events import MotionEventConfig, MotionStateMachine
from analysis.motion.model import MotionConfig, Rect
from analysis.motion.pipeline import MotionPipeline
from capture.reader import ReaderConfig, ReaderFactory, parse_device
from capture.session import MotionSession
from capture.video_source import PollingFrameSource
from effects.dispatcher import EffectDispatcher, EffectsConfig
from effects.players import SpeechAnnouncer, TonePlayer
from effects.status import (
    FanoutStatusReporter,
    LoggingStatusReporter,
    StatusReporter,
    WebhookStatusReporter,
)
from eventlog.logger import EventLogConfig, ResilientLogger
from eventlog.notice import UserNotice
from record.snapshot import SnapshotStore

_LOG = logging.getLogger(__name__)


def parse_roi(text: str) -> Rect:
    """``"x,y,w,h"`` -> Rect."""
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 4:
        raise argparse.ArgumentTypeError(f"ROI must be x,y,w,h (got {text!r})")
    try:
        x, y, w, h = (int(p) for p in parts)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"ROI values must be integers: {text!r}") from exc
    if w <= 0 or h <= 0:
        raise argparse.ArgumentTypeError(f"ROI width/height must be positive: {text!r}")
    return Rect(x, y, w, h)


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Watch a camera for motion; beep, speak, save snapshots and log events.",
    )
    ap.add_argument(
        "--device",
        type=str,
        default="0",
        help="Camera index, video file or stream URL.",
    )
    ap.add_argument(
        "--prefer",
        type=str,
        choices=["opencv", "null"],
        default="opencv",
        help='Reader backend ("opencv" for real devices, "null" for synthetic frames).',
    )
    ap.add_argument("--width", type=int, default=None, help="Requested capture width.")
    ap.add_argument("--height", type=int, default=None, help="Requested capture height.")
    ap.add_argument("--fps", type=float, default=None, help="Requested capture frame rate.")
    ap.add_argument(
        "--max-seconds",
        type=int,
        default=0,
        help="If > 0, stop after this many seconds; otherwise run until Ctrl+C.",
    )

    # Motion analysis
    ap.add_argument(
        "--threshold",
        type=int,
        default=15,
        help="Per-pixel luma difference above which a pixel counts as motion.",
    )
    ap.add_argument("--min-blob-width", type=int, default=20)
    ap.add_argument("--min-blob-height", type=int, default=20)
    ap.add_argument("--max-blob-width", type=int, default=500)
    ap.add_argument("--max-blob-height", type=int, default=500)
    ap.add_argument(
        "--roi",
        type=parse_roi,
        default=None,
        help="Region of interest as x,y,w,h (default: whole frame).",
    )
    ap.add_argument(
        "--grace-ms",
        type=float,
        default=1000.0,
        help="Time without motion before an active event ends.",
    )

    # Effects
    ap.add_argument("--no-beep", action="store_true", help="Disable the alert tone.")
    ap.add_argument("--beep-cooldown-ms", type=float, default=5000.0)
    ap.add_argument(
        "--beep-file",
        type=str,
        default=None,
        help="WAV file played for the alert tone (default: terminal bell).",
    )
    ap.add_argument("--no-speech", action="store_true", help="Disable the spoken alert.")
    ap.add_argument("--speech-cooldown-ms", type=float, default=4000.0)
    ap.add_argument("--speech-text", type=str, default="Motion Alert")
    ap.add_argument("--no-snapshots", action="store_true", help="Disable snapshot saving.")
    ap.add_argument("--snapshot-cooldown-ms", type=float, default=3000.0)
    ap.add_argument(
        "--snapshot-dir",
        type=str,
        default=os.environ.get("MOTIONWATCH_SNAPSHOT_DIR", "Detected Images"),
        help="Directory for Motion_<timestamp>.jpg snapshots.",
    )
    ap.add_argument(
        "--annotate-snapshots",
        action="store_true",
        help="Draw accepted motion boxes (green) and the ROI (red) on saved snapshots.",
    )
    ap.add_argument(
        "--no-offload",
        action="store_true",
        help="Run tone/snapshot effects and the status webhook inline instead of on worker threads.",
    )
    ap.add_argument(
        "--no-status",
        action="store_true",
        help="Do not report motion status lines.",
    )
    ap.add_argument(
        "--status-webhook",
        type=str,
        default=None,
        help="Optional URL that receives status changes as JSON POSTs.",
    )

    # Activity log
    ap.add_argument(
        "--log-file",
        type=str,
        default=os.environ.get("MOTIONWATCH_LOG_FILE", "motion_log.txt"),
        help="Primary activity log file.",
    )
    ap.add_argument("--no-event-log", action="store_true", help="Disable the activity log.")
    ap.add_argument(
        "--max-log-failures",
        type=int,
        default=5,
        help="Consecutive log-file failures before falling back to the system log.",
    )

    ap.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return ap


def main(argv: Optional[list[str]] = None) -> None:
    ap = build_arg_parser()
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    # ------------------------------------------------------------------ activity log

    log_cfg = EventLogConfig(
        path=Path(args.log_file),
        enabled=not args.no_event_log,
        max_consecutive_failures=args.max_log_failures,
    )
    notice = UserNotice(cooldown_ms=log_cfg.notice_cooldown_ms)
    event_log = ResilientLogger.from_config(log_cfg, notice=notice)
    _LOG.info("Writing activity log to %s", log_cfg.path)

    # ------------------------------------------------------------------ status

    reporters: List[StatusReporter] = [LoggingStatusReporter()]
    webhook: Optional[WebhookStatusReporter] = None
    if args.status_webhook:
        webhook = WebhookStatusReporter(args.status_webhook, background=not args.no_offload)
        reporters.append(webhook)
    status = FanoutStatusReporter(reporters)

    # ------------------------------------------------------------------ effect collaborators

    tone_player = TonePlayer(sound_file=Path(args.beep_file) if args.beep_file else None)
    speech = SpeechAnnouncer()
    store = SnapshotStore(args.snapshot_dir, event_log=event_log)

    effects_cfg = EffectsConfig(
        beep_enabled=not args.no_beep,
        beep_cooldown_ms=args.beep_cooldown_ms,
        speech_enabled=not args.no_speech,
        speech_cooldown_ms=args.speech_cooldown_ms,
        speech_text=args.speech_text,
        snapshot_enabled=not args.no_snapshots,
        snapshot_cooldown_ms=args.snapshot_cooldown_ms,
        status_enabled=not args.no_status,
    )
    motion_cfg = MotionConfig(
        threshold=args.threshold,
        min_width=args.min_blob_width,
        min_height=args.min_blob_height,
        max_width=args.max_blob_width,
        max_height=args.max_blob_height,
        roi=args.roi,
    )
    event_cfg = MotionEventConfig(grace_ms=args.grace_ms)

    def make_pipeline() -> MotionPipeline:
        return MotionPipeline(
            engine=MotionEngine(motion_cfg),
            state_machine=MotionStateMachine(event_cfg),
            dispatcher=EffectDispatcher.build(
                effects_cfg,
                tone=tone_player.play,
                speech=speech,
                snapshot=store.save,
                event_log=event_log,
                notice=notice,
                offload=not args.no_offload,
            ),
            event_log=event_log,
            status=status,
            status_enabled=effects_cfg.status_enabled,
            annotate_effects=args.annotate_snapshots,
        )

    # ------------------------------------------------------------------ source + session

    reader_cfg = ReaderConfig(
        prefer=args.prefer,
        device=parse_device(args.device),
        width=args.width,
        height=args.height,
        fps=args.fps,
    )
    source = PollingFrameSource(ReaderFactory.from_config(reader_cfg))
    session = MotionSession(
        source,
        make_pipeline,
        event_log=event_log,
        status=status,
        notice=notice,
    )

    # ------------------------------------------------------------------ main loop

    if not session.start():
        raise SystemExit(1)
    t0 = time.time()
    try:
        while session.running:
            if args.max_seconds > 0 and (time.time() - t0) >= args.max_seconds:
                _LOG.info("Reached max-seconds=%d, exiting loop.", args.max_seconds)
                break
            time.sleep(0.1)
    except KeyboardInterrupt:
        _LOG.info("KeyboardInterrupt received, shutting down.")
    finally:
        session.stop()
        if webhook is not None:
            webhook.close()


if __name__ == "__main__":  # pragma: no cover
    main()
