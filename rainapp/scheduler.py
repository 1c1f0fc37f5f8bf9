"""
Background loops for weather polling and rain commits.
Each loop runs in its own thread and reschedules itself after every step.
"""
import logging
import time
from threading import Thread
from typing import Optional, Dict, Any, List

from .config import (
    FETCH_INTERVAL_MS,
    COMMIT_INTERVAL_MS,
    COMMIT_POLL_SEC,
    COMMIT_RETRY_SEC,
    LOOP_ERROR_SLEEP_SEC,
    DEFAULT_OUTPUT_FILE,
)
from .git_repo import GitRepository, GitError
from .readme import render_status
from .state import StateStore
from .weather import WeatherClient, WeatherError, hourly_rate

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def _humanize(ms: float) -> str:
    secs = int(ms // 1000)
    if secs < 60:
        return f"{secs}s"
    if secs < 3600:
        return f"{secs // 60}m {secs % 60}s"
    return f"{secs // 3600}h {(secs % 3600) // 60}m"


# ============================================================================
# Weather Poller
# ============================================================================

def next_weather_delay(state: Dict[str, Any], now: Optional[int] = None) -> int:
    """Milliseconds until one fetch interval has passed since the last fetch."""
    if now is None:
        now = now_ms()
    return max(0, FETCH_INTERVAL_MS - (now - state.get("timeLastFetch", 0)))


def weather_check(store: StateStore, client: WeatherClient,
                  now: Optional[int] = None) -> Optional[float]:
    """
    Fetch the weather once and add its hourly rate to the accumulator.

    Returns the added rate, or None if the fetch failed (state untouched).
    """
    try:
        weather = client.fetch()
    except WeatherError as e:
        logger.warning(f"[SCHEDULER] Failed to get weather: {e}")
        return None

    rate = hourly_rate(weather)
    fetched_at = now if now is not None else now_ms()
    logger.info(f"[SCHEDULER] rain += {rate:.3f}")

    store.update(lambda s: {
        "weather": weather,
        "totalRain": s["totalRain"] + rate,
        "timeLastFetch": fetched_at,
    })
    return rate


def weather_loop(store: StateStore, client: WeatherClient):
    """
    Weather loop. Waits out the fetch interval, fetches, repeats.
    """
    logger.info("[SCHEDULER] Started weather loop")

    while True:
        try:
            delay = next_weather_delay(store.get_state())
            logger.info(f"[SCHEDULER] Will do next weather check in {_humanize(delay)}")
            time.sleep(delay / 1000.0)
            weather_check(store, client)
        except Exception as e:
            logger.exception(f"[SCHEDULER] Critical error in weather loop: {e}")
            time.sleep(LOOP_ERROR_SLEEP_SEC)


# ============================================================================
# Rain-Commit Scheduler
# ============================================================================

def should_commit(state: Dict[str, Any], now: Optional[int] = None) -> bool:
    """
    True once enough rain-time has built up since the last commit.

    More accumulated rain means a shorter wait; at least one whole
    droplet is needed.
    """
    if now is None:
        now = now_ms()
    total_rain = state.get("totalRain", 0)
    elapsed = now - state.get("timeLastCommit", 0)
    return total_rain >= 1 and total_rain * elapsed > COMMIT_INTERVAL_MS


def commit_rain(store: StateStore, repo: GitRepository,
                output_file: str = DEFAULT_OUTPUT_FILE,
                now: Optional[int] = None) -> Optional[Dict[str, str]]:
    """
    Write the status document, commit and push it, then spend one droplet.

    Returns the rendered document info, or None if any step failed.
    """
    state = store.get_state()
    status = render_status(state["weather"], state["totalRain"])

    try:
        repo.write_file(output_file, status["body"])
        repo.commit_all(status["description"])
        repo.push()
    except (GitError, OSError) as e:
        logger.warning(f"[SCHEDULER] Failed to commit rain: {e}")
        return None

    committed_at = now if now is not None else now_ms()
    logger.info(f"[SCHEDULER] {status['date']} commit {status['description']}")

    store.update(lambda s: {
        "totalRain": s["totalRain"] - 1,
        "timeLastCommit": committed_at,
    })
    return status


def commit_loop(store: StateStore, repo: GitRepository,
                output_file: str = DEFAULT_OUTPUT_FILE):
    """
    Commit loop. Commits while the threshold is met, otherwise polls.
    """
    logger.info("[SCHEDULER] Started commit loop")

    while True:
        try:
            if should_commit(store.get_state()):
                if commit_rain(store, repo, output_file) is None:
                    time.sleep(COMMIT_RETRY_SEC)
                continue

            # Minimal interval in the extreme case
            time.sleep(COMMIT_POLL_SEC)
        except Exception as e:
            logger.exception(f"[SCHEDULER] Critical error in commit loop: {e}")
            time.sleep(LOOP_ERROR_SLEEP_SEC)


def start_scheduler(store: StateStore, client: WeatherClient, repo: GitRepository,
                    output_file: str = DEFAULT_OUTPUT_FILE) -> List[Thread]:
    """Start the weather and commit threads."""
    logger.info("[SCHEDULER] Starting scheduler threads")
    threads = [
        Thread(target=weather_loop, args=(store, client), daemon=True, name="WeatherLoop"),
        Thread(target=commit_loop, args=(store, repo, output_file), daemon=True, name="CommitLoop"),
    ]
    for thread in threads:
        thread.start()
    logger.info("[SCHEDULER] Scheduler threads started")
    return threads
