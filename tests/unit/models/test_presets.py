# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

import datetime

import pytest

from Apptio.Targetprocess.core.errors import ValidationError
from Apptio.Targetprocess.models.presets import SEARCH_PRESETS, apply_preset, date_variables
from Apptio.Targetprocess.models.where import compile_where_clause

THURSDAY = datetime.date(2024, 3, 14)


def test_static_preset():
    assert apply_preset("open") == 'EntityState.Name eq "Open"'


def test_user_placeholder_filled():
    assert apply_preset("myTasks", {"currentUser": "jane@example.com"}) == (
        'AssignedUser.Email eq "jane@example.com"'
    )


def test_missing_variable_reported():
    with pytest.raises(ValidationError) as exc_info:
        apply_preset("myOpenTasks")
    assert "currentUser" in str(exc_info.value)
    assert exc_info.value.details == {"preset": "myOpenTasks", "missing": ["currentUser"]}


def test_unknown_preset_lists_available():
    with pytest.raises(ValidationError) as exc_info:
        apply_preset("myBugs")
    assert "Unknown preset" in str(exc_info.value)
    assert "myTasks" in str(exc_info.value)


def test_date_placeholders():
    assert apply_preset("createdToday", today=THURSDAY) == (
        "CreateDate gte 2024-03-14 and CreateDate lt 2024-03-15"
    )
    assert apply_preset("modifiedThisWeek", today=THURSDAY) == "ModifyDate gte 2024-03-11"


def test_caller_can_override_date_variable():
    assert apply_preset("createdThisWeek", {"weekStartDate": "2024-01-01"}, today=THURSDAY) == (
        "CreateDate gte 2024-01-01"
    )


@pytest.mark.parametrize(
    "today,week_start",
    [
        (datetime.date(2024, 3, 11), "2024-03-11"),
        (THURSDAY, "2024-03-11"),
        (datetime.date(2024, 3, 17), "2024-03-11"),
        (datetime.datetime(2024, 3, 18, 23, 59), "2024-03-18"),
    ],
)
def test_week_starts_on_monday(today, week_start):
    assert date_variables(today)["weekStartDate"] == week_start


def test_month_rollover():
    assert date_variables(datetime.date(2024, 2, 29))["tomorrowDate"] == "2024-03-01"


@pytest.mark.parametrize("name", sorted(SEARCH_PRESETS))
def test_every_preset_compiles(name):
    where = apply_preset(name, {"currentUser": "jane@example.com", "projectId": 7}, today=THURSDAY)
    assert "${" not in where
    compile_where_clause(where)


def test_quote_in_variable_is_escaped_after_compile():
    where = apply_preset("myTasks", {"currentUser": "o'neil@example.com"})
    assert compile_where_clause(where) == "AssignedUser.Email eq 'o''neil@example.com'"
