"""Playback arithmetic for digital screens.

A screen plays a loop of fixed-length spots over and over during its
operating hours. Times are ``HH:MM`` strings on a 24-hour clock and spot
durations are in seconds.
"""

import math

from ohplus.core.errors import InvalidInputError

DEFAULT_START_TIME = "08:00"
DEFAULT_END_TIME = "22:00"
DEFAULT_SPOT_DURATION = 30
DEFAULT_LOOPS_PER_DAY = 24


def parse_clock(value: str | None, default: str) -> tuple[int, int]:
    text = (value or default).strip()
    try:
        hours_text, minutes_text = text.split(":", 1)
        hours, minutes = int(hours_text), int(minutes_text)
    except ValueError:
        raise InvalidInputError(f"Invalid time: {value}")
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise InvalidInputError(f"Invalid time: {value}")
    return hours, minutes


def to_hours(value: str | None, default: str) -> float:
    hours, minutes = parse_clock(value, default)
    return hours + minutes / 60


def format_minutes(total_minutes: float) -> str:
    hours = math.floor(total_minutes / 60) % 24
    minutes = math.floor(total_minutes % 60)
    return f"{hours:02d}:{minutes:02d}"


def default_spots_per_loop(spot_duration: int) -> int:
    # One loop per hour.
    return max(1, math.floor(60 / (spot_duration / 60)))


def resolve_settings(cms: dict | None) -> dict:
    cms = cms or {}
    spot_duration = int(cms.get("spot_duration") or DEFAULT_SPOT_DURATION)
    if spot_duration <= 0:
        raise InvalidInputError("Spot duration must be positive")
    loops_per_day = int(cms.get("loops_per_day") or DEFAULT_LOOPS_PER_DAY)
    if loops_per_day <= 0:
        raise InvalidInputError("Loops per day must be positive")
    start_time = cms.get("start_time") or DEFAULT_START_TIME
    end_time = cms.get("end_time") or DEFAULT_END_TIME
    parse_clock(start_time, DEFAULT_START_TIME)
    parse_clock(end_time, DEFAULT_END_TIME)
    return {
        "start_time": start_time,
        "end_time": end_time,
        "spot_duration": spot_duration,
        "loops_per_day": loops_per_day,
        "spots_per_loop": int(cms.get("spots_per_loop") or default_spots_per_loop(spot_duration)),
    }


def generate_timeline(start_time: str, spot_duration: int, spots_per_loop: int) -> list[dict]:
    hours, minutes = parse_clock(start_time, DEFAULT_START_TIME)
    start_minutes = hours * 60 + minutes
    slots = []
    for index in range(spots_per_loop):
        slot_start = start_minutes + index * spot_duration / 60
        slots.append(
            {
                "id": f"slot-{index}",
                "spotNumber": index + 1,
                "time": format_minutes(slot_start),
                "endTime": format_minutes(slot_start + spot_duration / 60),
                "duration": spot_duration,
                "isEmpty": True,
            }
        )
    return slots


def operating_hours(start_time: str, end_time: str) -> float:
    start = to_hours(start_time, DEFAULT_START_TIME)
    end = to_hours(end_time, DEFAULT_END_TIME)
    if end >= start:
        return end - start
    return 24 - start + end


def timeline_metrics(cms: dict | None) -> dict:
    settings = resolve_settings(cms)
    hours = operating_hours(settings["start_time"], settings["end_time"])
    total_spots = settings["loops_per_day"] * settings["spots_per_loop"]
    return {
        **settings,
        "operatingHours": hours,
        "loopDurationSeconds": settings["spots_per_loop"] * settings["spot_duration"],
        "loopIntervalMinutes": round(hours * 60 / settings["loops_per_day"]),
        "totalSpotsPerDay": total_spots,
        "totalContentTime": total_spots * settings["spot_duration"] / 60,
    }


def loop_start_times(cms: dict | None) -> list[str]:
    metrics = timeline_metrics(cms)
    hours, minutes = parse_clock(metrics["start_time"], DEFAULT_START_TIME)
    start_minutes = hours * 60 + minutes
    interval = metrics["operatingHours"] * 60 / metrics["loops_per_day"]
    return [format_minutes(start_minutes + index * interval) for index in range(metrics["loops_per_day"])]


def fill_slots(slots: list[dict], schedules: list[dict]) -> list[dict]:
    by_spot = {}
    for schedule in schedules:
        if schedule.get("spot_number") is None:
            continue
        spot_number = int(schedule["spot_number"])
        if spot_number not in by_spot:
            by_spot[spot_number] = schedule
    filled = []
    for slot in slots:
        schedule = by_spot.get(slot["spotNumber"])
        if schedule:
            slot = {
                **slot,
                "isEmpty": False,
                "scheduleId": schedule.get("id"),
                "title": schedule.get("title", ""),
                "media": schedule.get("media"),
            }
        filled.append(slot)
    return filled
