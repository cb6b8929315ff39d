"""Rebuild score -> P(interview) calibration curves from exported outcome events.

Reads one JSON outcome event per line, fits an isotonic curve per
(profile, job family) plus a global curve per profile, writes all curves
to a JSON file and logs Brier score / ECE for each.

Usage:
    python training/scripts/rebuild_calibration.py [--config training/configs/calibration.yaml]
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import yaml

# Add backend to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent / "backend"))

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


def load_config(path: str) -> dict:
    with open(path) as f:
        return yaml.safe_load(f)


def load_events(path: Path) -> list:
    from pydantic import ValidationError

    from models.schemas import OutcomeEvent

    events = []
    skipped = 0
    with open(path) as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                events.append(OutcomeEvent.model_validate_json(line))
            except ValidationError as e:
                skipped += 1
                logger.warning("Skipping malformed event on line %d: %s", line_no, e.error_count())
    logger.info("Loaded %d events from %s (%d skipped)", len(events), path, skipped)
    return events


async def rebuild(config: dict) -> int:
    from services.calibration import (
        CalibrationService,
        brier_score,
        expected_calibration_error,
        latest_outcomes,
        select_events,
    )
    from services.stores import InMemoryEventStore

    events_path = Path(config["data"]["events_path"])
    if not events_path.exists():
        logger.error("Outcome events not found at %s", events_path)
        return 1

    cal_cfg = config.get("calibration", {})
    events = load_events(events_path)
    labelled = latest_outcomes([e for e in events if e.outcome is not None and e.score is not None])
    service = CalibrationService(
        InMemoryEventStore(events),
        min_reliable_samples=cal_cfg.get("min_reliable_samples", 30),
    )
    report = await service.rebuild(cal_cfg.get("profiles", ["A", "C"]), cal_cfg.get("job_families", []))

    max_ece = config.get("evaluation", {}).get("max_ece", 0.10)
    for curve in report.curves:
        selected = select_events(labelled, curve.profile, curve.job_family)
        brier = brier_score(curve, selected)
        ece = expected_calibration_error(curve, selected)
        reliable = curve.sample_count >= curve.min_reliable_samples
        logger.info(
            "profile=%s family=%s samples=%d bins=%d brier=%s ece=%s%s",
            curve.profile, curve.job_family or "global", curve.sample_count, len(curve.bins),
            f"{brier:.4f}" if brier is not None else "n/a",
            f"{ece:.4f}" if ece is not None else "n/a",
            "" if reliable else " (below minimum samples, lookups return null)",
        )
        if ece is not None and ece > max_ece:
            logger.warning("ECE %.4f exceeds %.2f for profile=%s family=%s",
                           ece, max_ece, curve.profile, curve.job_family or "global")

    output_path = Path(config["data"]["output_path"])
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump([c.model_dump(mode="json") for c in report.curves], f, indent=2)
    logger.info("Wrote %d curves to %s", len(report.curves), output_path)

    for err in report.errors:
        logger.error(err)
    return 1 if report.errors else 0


def main(config_path: str = "training/configs/calibration.yaml") -> int:
    config = load_config(config_path)
    return asyncio.run(rebuild(config))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rebuild calibration curves")
    parser.add_argument("--config", default="training/configs/calibration.yaml")
    args = parser.parse_args()
    sys.exit(main(args.config))
