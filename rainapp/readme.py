"""
Status document rendering.
"""
import math
from datetime import datetime
from typing import Optional, Dict, Any, List

from .config import RAIN_GLYPH, SNOW_GLYPH, DATE_FORMAT, WEATHER_ICON_URL
from .weather import has_snow


def _ordinal(day: int) -> str:
    if 10 <= day % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{day}{suffix}"


def format_date(timestamp: float) -> str:
    """Local time as e.g. ``October 19th 2026, 04:05 pm``."""
    dt = datetime.fromtimestamp(timestamp)
    text = dt.strftime(DATE_FORMAT.format(day=_ordinal(dt.day)))
    return text[:-2] + text[-2:].lower()


def _conditions(weather: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    entries = (weather or {}).get("weather")
    if not isinstance(entries, list):
        return []
    return [e for e in entries if isinstance(e, dict)]


def describe(weather: Optional[Dict[str, Any]]) -> str:
    conditions = _conditions(weather)
    if conditions and conditions[0].get("description"):
        return str(conditions[0]["description"])
    return "unknown"


def icon_urls(weather: Optional[Dict[str, Any]]) -> List[str]:
    return [WEATHER_ICON_URL.format(icon=c["icon"]) for c in _conditions(weather) if c.get("icon")]


def droplets(weather: Optional[Dict[str, Any]], total_rain: float) -> str:
    glyph = SNOW_GLYPH if has_snow(weather) else RAIN_GLYPH
    return glyph * max(0, math.floor(total_rain)) + " "


def humidity(weather: Optional[Dict[str, Any]]) -> Any:
    main = (weather or {}).get("main")
    if isinstance(main, dict) and main.get("humidity") is not None:
        return main["humidity"]
    return "?"


def render_status(weather: Optional[Dict[str, Any]], total_rain: float) -> Dict[str, str]:
    """
    Build the status document and its commit message.

    Returns:
        Dict with 'body' (Markdown), 'description' (commit message)
        and 'date' (formatted observation time)
    """
    weather = weather or {}
    drops = droplets(weather, total_rain)
    desc = describe(weather)
    try:
        date = format_date(float(weather.get("dt") or 0))
    except (TypeError, ValueError, OverflowError, OSError):
        date = format_date(0)
    icons = " ".join(f"![{url}]({url})" for url in icon_urls(weather))

    body = (
        f"# It rained the last time in {weather.get('name') or '???'} on *{date}*.\n"
        f"## {drops}  {icons} {desc}\n"
        f"Humidity {humidity(weather)}%\n"
    )
    return {
        "body": body,
        "description": f"{drops} {desc}",
        "date": date,
    }
