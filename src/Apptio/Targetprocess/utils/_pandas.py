# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""Internal pandas helpers"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import pandas as pd

# /Date(1700000000000)/ or /Date(1700000000000+0100)/
_TP_DATE_RE = re.compile(r"^/Date\((?P<ms>-?\d+)(?P<offset>[+-]\d{4})?\)/$")


def parse_tp_date(value: Any) -> Optional[pd.Timestamp]:
    """Convert a Targetprocess ``/Date(ms±zone)/`` string to a UTC Timestamp.

    The milliseconds are already UTC; the zone suffix only records the server's
    local offset and is ignored. Returns None for anything else.
    """
    if not isinstance(value, str):
        return None
    m = _TP_DATE_RE.match(value)
    if not m:
        return None
    return pd.Timestamp(int(m.group("ms")), unit="ms", tz="UTC")


def records_to_dataframe(records: List[Dict[str, Any]]) -> pd.DataFrame:
    """Flatten entity dicts into a DataFrame.

    Nested objects become dotted columns (``Project.Name``); ``ResourceType``
    bookkeeping keys are dropped; columns holding only Targetprocess dates are
    converted to UTC timestamps.

    :param records: Items returned by a search.
    """
    if not records:
        return pd.DataFrame()
    df = pd.json_normalize(records, sep=".")
    df = df.drop(columns=[c for c in df.columns if c == "ResourceType" or c.endswith(".ResourceType")])
    for col in df.columns:
        if df[col].dtype != object:
            continue
        present = df[col].dropna()
        if present.empty:
            continue
        parsed = present.map(parse_tp_date)
        if parsed.notna().all():
            df[col] = pd.to_datetime(df[col].map(parse_tp_date), utc=True)
    return df
