import asyncio
import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from dotenv import load_dotenv

import config
from archive import ArchiveWriter, DiagnosticCapture
from browser import SessionDriver, SessionOptions
from challenge import ChallengeStateMachine
from detector import ChallengeDetector
from errors import LaunchError, PersistenceError
from events import EventLog
from harvest import Harvester
from motion import MotionSynthesizer
from puzzle import PuzzleLayout, PuzzleSolver, Rect
from rate_limiter import RateLimiter
from targets import load_targets

logger = logging.getLogger("harvester")


def build_harvester(archive_dir: Path, log_dir: Path, headless: bool) -> Harvester:
    motion = MotionSynthesizer()
    detector = ChallengeDetector(config.CHALLENGE_FRAME_NAME, config.CHALLENGE_CONTAINER_SELECTOR)
    layout = PuzzleLayout(
        piece=Rect.from_tuple(config.PUZZLE_PIECE_REGION),
        background=Rect.from_tuple(config.PUZZLE_BACKGROUND_REGION),
    )
    solver = PuzzleSolver(layout, config.CHALLENGE_FRAME_NAME, config.CHALLENGE_CONTAINER_SELECTOR)
    machine = ChallengeStateMachine(
        detector, solver, motion,
        confirm_selectors=config.CONFIRM_SELECTORS,
        slider_selector=config.CHALLENGE_SLIDER_SELECTOR,
    )
    options = SessionOptions(
        headless=headless,
        user_data_dir=config.CHROME_USER_DATA_DIR,
        profile_dir=config.CHROME_PROFILE_DIR,
        executable_path=config.CHROME_EXECUTABLE,
        channel=config.CHROME_CHANNEL,
        proxies=config.PROXY_LIST,
    )
    return Harvester(
        driver=SessionDriver(),
        session_options=options,
        limiter=RateLimiter.hourly(config.MAX_URLS_PER_HOUR),
        detector=detector,
        machine=machine,
        motion=motion,
        archive=ArchiveWriter(archive_dir),
        diagnostics=DiagnosticCapture(log_dir / "failed_harvest"),
        events=EventLog(log_dir),
        timeout_ms=config.TIMEOUT_MS,
        min_delay_ms=config.MIN_DELAY_MS,
        max_delay_ms=config.MAX_DELAY_MS,
    )


async def main(input_path: Path | None = None, archive_dir: Path = config.ARCHIVE_DIR,
               log_dir: Path = config.LOG_DIR, headless: bool = config.HEADLESS) -> int:
    run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    try:
        harvester = build_harvester(archive_dir, log_dir, headless)
    except (PersistenceError, OSError) as e:
        logger.error("FATAL: cannot prepare output directories: %s", e)
        return 1

    harvester.events.event("run:start", script=sys.argv[0], args=sys.argv[1:], runId=run_id)
    if not config.CHROME_USER_DATA_DIR:
        logger.warning("CHROME_USER_DATA_DIR is not set; using a fresh browser profile per target")

    try:
        targets = load_targets(input_path)
    except (OSError, ValueError) as e:
        logger.error("FATAL: cannot read input list: %s", e)
        return 1

    logger.info("Harvesting %d targets (max %d/hour per domain, headless=%s)",
                len(targets), config.MAX_URLS_PER_HOUR, headless)

    try:
        await harvester.run(targets)
    except LaunchError as e:
        logger.error("FATAL: %s", e)
        harvester.events.event("run:fatal", runId=run_id, message=str(e))
        return 1
    finally:
        harvester.metrics.print_summary()
        results_file = f"harvest_results_{run_id}.json"
        with open(results_file, "w") as f:
            json.dump(harvester.metrics.get_summary(), f, indent=2)
        logger.info("Results saved to: %s", results_file)

    harvester.events.event("run:end", runId=run_id)
    logger.info("Harvest complete.")
    return 0


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="[%(asctime)s] [%(name)s] [%(levelname)s] > %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    parser = argparse.ArgumentParser(description="Page harvester")
    parser.add_argument("--input", type=Path, help="urls.csv (id,url) or urls.txt (one URL per line)")
    parser.add_argument("--archive-dir", type=Path, default=config.ARCHIVE_DIR, help="Archive output directory")
    parser.add_argument("--log-dir", type=Path, default=config.LOG_DIR, help="Event log and diagnostics directory")
    parser.add_argument(
        "--headless",
        action="store_true",
        default=config.HEADLESS,
        help="Run browser in headless mode"
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(main(
        input_path=args.input or (Path(config.INPUT_PATH) if config.INPUT_PATH else None),
        archive_dir=args.archive_dir,
        log_dir=args.log_dir,
        headless=args.headless,
    )))
