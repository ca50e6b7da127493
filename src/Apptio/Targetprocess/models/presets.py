# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""
Named where-clause presets for common searches.

Presets may contain ``${name}`` placeholders. ``currentUser`` and ``projectId``
must be supplied by the caller; ``todayDate``, ``tomorrowDate`` and
``weekStartDate`` are derived from the current date (weeks start on Monday).
"""

from __future__ import annotations

import datetime as _dt
import re
from typing import Any, Dict, Mapping, Optional

from ..core._error_codes import VALIDATION_PRESET
from ..core.errors import ValidationError

SEARCH_PRESETS: Dict[str, str] = {
    # Status
    "open": 'EntityState.Name eq "Open"',
    "inProgress": 'EntityState.Name eq "In Progress"',
    "done": 'EntityState.Name eq "Done"',
    "notDone": 'EntityState.Name ne "Done"',
    "notClosed": 'EntityState.Name ne "Closed"',
    # Assignment
    "myTasks": 'AssignedUser.Email eq "${currentUser}"',
    "unassigned": "AssignedUser is null",
    # Project
    "projectItems": "Project.Id eq ${projectId}",
    # Priority
    "highPriority": 'Priority.Name eq "High"',
    # Dates
    "createdToday": "CreateDate gte ${todayDate} and CreateDate lt ${tomorrowDate}",
    "modifiedToday": "ModifyDate gte ${todayDate} and ModifyDate lt ${tomorrowDate}",
    "createdThisWeek": "CreateDate gte ${weekStartDate}",
    "modifiedThisWeek": "ModifyDate gte ${weekStartDate}",
    # Combined
    "myOpenTasks": 'AssignedUser.Email eq "${currentUser}" and EntityState.Name eq "Open"',
    "highPriorityUnassigned": 'Priority.Name eq "High" and AssignedUser is null',
    "myRecentTasks": 'AssignedUser.Email eq "${currentUser}" and ModifyDate gt @Today',
    "activeItems": 'EntityState.Name ne "Done" and EntityState.Name ne "Closed"',
}

_PLACEHOLDER_RE = re.compile(r"\$\{(\w+)\}")


def date_variables(today: Optional[_dt.date] = None) -> Dict[str, str]:
    """ISO dates for the date placeholders, relative to ``today``."""
    today = today or _dt.date.today()
    if isinstance(today, _dt.datetime):
        today = today.date()
    return {
        "todayDate": today.isoformat(),
        "tomorrowDate": (today + _dt.timedelta(days=1)).isoformat(),
        "weekStartDate": (today - _dt.timedelta(days=today.weekday())).isoformat(),
    }


def apply_preset(
    name: str,
    variables: Optional[Mapping[str, Any]] = None,
    today: Optional[_dt.date] = None,
) -> str:
    """
    Return the where clause of preset ``name`` with its placeholders filled in.

    :param name: Preset name, e.g. ``"myOpenTasks"``.
    :type name: str
    :param variables: Values for caller-supplied placeholders such as ``currentUser``.
    :type variables: Mapping[str, Any] or None
    :param today: Reference date for date placeholders. Defaults to today.
    :type today: datetime.date or None
    :return: Where clause ready for :func:`~Apptio.Targetprocess.models.where.compile_where_clause`.
    :rtype: str
    :raises ValidationError: If the preset is unknown or a placeholder has no value.

    Example::

        apply_preset("myTasks", {"currentUser": "jane@example.com"})
        # 'AssignedUser.Email eq "jane@example.com"'
    """
    try:
        template = SEARCH_PRESETS[name]
    except KeyError:
        raise ValidationError(
            f"Unknown preset: {name!r}. Available presets: {', '.join(sorted(SEARCH_PRESETS))}",
            subcode=VALIDATION_PRESET,
        ) from None

    values: Dict[str, Any] = {}
    if "Date}" in template:
        values.update(date_variables(today))
    values.update(variables or {})

    missing = sorted({m for m in _PLACEHOLDER_RE.findall(template) if m not in values})
    if missing:
        raise ValidationError(
            f"Preset {name!r} requires values for: {', '.join(missing)}",
            subcode=VALIDATION_PRESET,
            details={"preset": name, "missing": missing},
        )
    return _PLACEHOLDER_RE.sub(lambda m: str(values[m.group(1)]), template)


__all__ = ["SEARCH_PRESETS", "date_variables", "apply_preset"]
