# accounting/api/views/params.py

"""
Query-param parsing shared by the report views.
Dates are calendar dates (ledger transaction_date), inclusive.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from django.utils.dateparse import parse_date


class InvalidQueryParam(ValueError):
    pass


def date_param(request, name: str) -> Optional[date]:
    raw = request.query_params.get(name)
    if raw is None or str(raw).strip() == "":
        return None
    parsed = parse_date(str(raw).strip())
    if parsed is None:
        raise InvalidQueryParam(f"Invalid {name} (expected YYYY-MM-DD)")
    return parsed


def id_list_param(request, name: str) -> list[int]:
    raw = request.query_params.get(name) or ""
    ids = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.append(int(part))
        except ValueError as exc:
            raise InvalidQueryParam(f"{name} must be a comma-separated list of integers") from exc
    return ids
