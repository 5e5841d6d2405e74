"""
Day Log Model - derives and updates the per-day activity log of a session.

All update helpers are pure: they take a DayLog and return a new one, leaving
the input untouched. The sync engine writes the result back into session state.
"""

import time
from datetime import date, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from ..models import MAX_PHOTOS, ActivityType, DayLog, DogConfig, SessionState, get_time_slot


TASK_ID_DELIMITER = "-"

DogLike = Union[DogConfig, str]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def _escape(component: str) -> str:
    return component.replace("%", "%25").replace(TASK_ID_DELIMITER, "%2D")


def _unescape(component: str) -> str:
    return component.replace("%2D", TASK_ID_DELIMITER).replace("%25", "%")


def _dog_name(dog: DogLike) -> str:
    return dog.name if isinstance(dog, DogConfig) else dog


def task_id(date_str: str, slot_id: str, dog_name: str, activity: Union[ActivityType, str]) -> str:
    """
    Build the task key ``{date}-{slotId}-{dogName}-{activity}``.

    ``%`` and ``-`` inside the slot id and dog name are percent-escaped so that
    distinct tuples never produce the same key.
    """
    activity_value = activity.value if isinstance(activity, ActivityType) else activity
    return TASK_ID_DELIMITER.join([
        date_str,
        _escape(slot_id),
        _escape(dog_name),
        _escape(activity_value),
    ])


def parse_task_id(key: str) -> Tuple[str, str, str, str]:
    """
    Split a task key back into (date, slot_id, dog_name, activity).

    Raises:
        ValueError: If the key was not produced by task_id()
    """
    date_str, rest = key[:10], key[10:]
    parts = rest.split(TASK_ID_DELIMITER)
    if len(parts) != 4 or parts[0] != "":
        raise ValueError(f"Malformed task id: {key!r}")
    date.fromisoformat(date_str)
    return date_str, _unescape(parts[1]), _unescape(parts[2]), _unescape(parts[3])


def resolve_current_date(session: SessionState, day_index: int) -> str:
    """
    Calendar date of day ``day_index`` (0-based) of the session.

    Works on the plain calendar date, so the host timezone never shifts the day.
    """
    start = date.fromisoformat(session.start_date)
    return (start + timedelta(days=day_index)).isoformat()


def today_local() -> str:
    """Today's date on the host's local calendar."""
    return date.today().isoformat()


def empty_log(date_str: str) -> DayLog:
    return DayLog(date=date_str, tasks={}, task_timestamps={}, comments={}, photos=[])


def get_or_default_log(session: SessionState, date_str: str) -> DayLog:
    """Stored log for the date, or a fresh empty one. Nothing is written back."""
    log = session.logs.get(date_str)
    if log is None:
        return empty_log(date_str)
    return log


def migrate_photos(log: DayLog) -> List[str]:
    """Photos of the log, falling back to the legacy single-photo fields."""
    if log.photos is not None:
        return list(log.photos)
    return [photo for photo in (log.morning_photo, log.evening_photo) if photo]


def toggle_task(log: DayLog, key: str, timestamp: Optional[int] = None) -> DayLog:
    """Flip completion of a task; stamp it when done, drop the stamp when undone."""
    completed = not log.tasks.get(key, False)
    tasks = {**log.tasks, key: completed}
    timestamps = dict(log.task_timestamps)
    if completed:
        timestamps[key] = timestamp if timestamp is not None else now_ms()
    else:
        timestamps.pop(key, None)
    return log.model_copy(update={"tasks": tasks, "task_timestamps": timestamps})


def slot_task_ids(date_str: str, slot_id: str, dogs: Iterable[DogLike],
                  activities: Iterable[Union[ActivityType, str]]) -> List[str]:
    """Task keys for every (dog, activity) pair of a slot."""
    activities = list(activities)
    return [
        task_id(date_str, slot_id, _dog_name(dog), activity)
        for dog in dogs
        for activity in activities
    ]


def complete_all_in_slot(
    log: DayLog,
    slot_id: str,
    dogs: Sequence[DogLike],
    activities: Optional[Sequence[Union[ActivityType, str]]] = None,
    timestamp: Optional[int] = None,
) -> DayLog:
    """
    Mark every task of a slot as done.

    Tasks that are already done keep their original timestamp. When
    ``activities`` is omitted the slot's scheduled activities are used; an
    unknown slot then leaves the log unchanged.
    """
    if activities is None:
        slot = get_time_slot(slot_id)
        if slot is None:
            return log
        activities = slot.activities

    stamp = timestamp if timestamp is not None else now_ms()
    tasks = dict(log.tasks)
    timestamps = dict(log.task_timestamps)
    for key in slot_task_ids(log.date, slot_id, dogs, activities):
        if not tasks.get(key):
            tasks[key] = True
            timestamps[key] = stamp
    return log.model_copy(update={"tasks": tasks, "task_timestamps": timestamps})


def is_slot_complete(log: DayLog, slot_id: str, dogs: Sequence[DogLike]) -> bool:
    slot = get_time_slot(slot_id)
    if slot is None:
        return False
    return all(log.tasks.get(key) for key in slot_task_ids(log.date, slot_id, dogs, slot.activities))


def add_photos(log: DayLog, new_photos: Iterable[str]) -> DayLog:
    """Append photos, keeping at most MAX_PHOTOS."""
    photos = (migrate_photos(log) + list(new_photos))[:MAX_PHOTOS]
    return log.model_copy(update={"photos": photos})


def remove_photo(log: DayLog, index: int) -> DayLog:
    photos = migrate_photos(log)
    if not 0 <= index < len(photos):
        raise IndexError(f"No photo at position {index}")
    del photos[index]
    return log.model_copy(update={"photos": photos})


def set_comment(log: DayLog, dog_name: str, text: str) -> DayLog:
    return log.model_copy(update={"comments": {**log.comments, dog_name: text}})


def set_ai_summary(log: DayLog, text: Optional[str]) -> DayLog:
    return log.model_copy(update={"ai_summary": text})


def with_log(session: SessionState, log: DayLog) -> SessionState:
    """Session state with ``log`` stored under its date."""
    return session.model_copy(update={"logs": {**session.logs, log.date: log}})
