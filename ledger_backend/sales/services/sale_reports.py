# sales/services/sale_reports.py

from __future__ import annotations

from datetime import date
from typing import Optional

from django.db.models import Sum

from accounting.entries import to_money
from sales.models import Sale


def sales_totals_for_period(start_date: Optional[date], end_date: Optional[date]) -> dict:
    """
    Revenue and cost totals straight from completed sale records.

    Used as the P&L source when the ledger has no postings for a period.
    """
    qs = Sale.objects.filter(status=Sale.STATUS_COMPLETED)
    if start_date is not None:
        qs = qs.filter(sale_date__gte=start_date)
    if end_date is not None:
        qs = qs.filter(sale_date__lte=end_date)

    totals = qs.aggregate(revenue=Sum("total_amount"), cost=Sum("cost_amount"))
    return {
        "revenue": to_money(totals["revenue"]),
        "cost_of_goods_sold": to_money(totals["cost"]),
        "sale_count": qs.count(),
    }
