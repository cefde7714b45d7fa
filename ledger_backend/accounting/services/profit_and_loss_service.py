# accounting/services/profit_and_loss_service.py

"""
PROFIT & LOSS SERVICE (INCOME STATEMENT)

Read-only aggregation over live, completed ledger entries in
[start_date, end_date] (transaction_date, inclusive).

Figures:
- revenue:            every revenue account, itemised
- cost_of_goods_sold: the COGS role account
- gross_profit:       revenue - COGS
- expenses:           every expense account except COGS, itemised
                      (new expense categories flow in automatically)
- net_income:         gross_profit - expenses

Accounts appear when active, or when inactive but carrying activity in the
period (so the statement always ties back to the ledger).

Provenance:
- source = "ledger"          figures come from the ledger
- source = "source_records"  the ledger has no postings in the period and
                             LEDGER_PNL_FALLBACK_ENABLED is on; revenue and
                             COGS come from LEDGER_PNL_FALLBACK_SOURCE
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.utils.module_loading import import_string

from accounting.entries import ZERO, AccountRole, is_zero, to_money
from accounting.models.account import Account
from accounting.services.account_resolver import code_for
from accounting.services.balance_service import account_activity, has_postings_between
from accounting.services.exceptions import AccountingServiceError

logger = logging.getLogger(__name__)

SOURCE_LEDGER = "ledger"
SOURCE_RECORDS = "source_records"


@dataclass(frozen=True)
class StatementLine:
    code: str
    name: str
    amount: Decimal
    category: str = ""

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "name": self.name,
            "category": self.category,
            "amount": str(self.amount),
        }


@dataclass(frozen=True)
class ProfitAndLoss:
    start_date: Optional[date]
    end_date: Optional[date]
    revenue: tuple
    total_revenue: Decimal
    cost_of_goods_sold: Decimal
    gross_profit: Decimal
    expenses: tuple
    total_expenses: Decimal
    net_income: Decimal
    source: str = SOURCE_LEDGER

    @property
    def is_ledger_backed(self) -> bool:
        return self.source == SOURCE_LEDGER

    def as_dict(self) -> dict:
        return {
            "period": {
                "start_date": self.start_date.isoformat() if self.start_date else None,
                "end_date": self.end_date.isoformat() if self.end_date else None,
            },
            "source": self.source,
            "revenue": [line.as_dict() for line in self.revenue],
            "total_revenue": str(self.total_revenue),
            "cost_of_goods_sold": str(self.cost_of_goods_sold),
            "gross_profit": str(self.gross_profit),
            "expenses": [line.as_dict() for line in self.expenses],
            "total_expenses": str(self.total_expenses),
            "net_income": str(self.net_income),
        }


def _include(account: Account, amount: Decimal) -> bool:
    return account.is_active or not is_zero(amount)


def _from_ledger(start_date, end_date) -> ProfitAndLoss:
    cogs_code = code_for(AccountRole.COST_OF_GOODS_SOLD)

    accounts = list(
        Account.objects.filter(account_type__in=[Account.REVENUE, Account.EXPENSE]).order_by("code")
    )
    activity = account_activity(start_date, end_date, codes=[a.code for a in accounts])

    revenue_lines = []
    expense_lines = []
    cogs = ZERO

    for account in accounts:
        amount = account.natural_amount(activity.get(account.code, ZERO))
        if account.account_type == Account.REVENUE:
            if _include(account, amount):
                revenue_lines.append(
                    StatementLine(account.code, account.name, amount, account.category)
                )
        elif account.category == Account.CATEGORY_COGS or account.code == cogs_code:
            cogs += amount
        elif _include(account, amount):
            expense_lines.append(
                StatementLine(account.code, account.name, amount, account.category)
            )

    return _assemble(start_date, end_date, revenue_lines, cogs, expense_lines, SOURCE_LEDGER)


def _from_source_records(start_date, end_date) -> ProfitAndLoss:
    source_path = getattr(settings, "LEDGER_PNL_FALLBACK_SOURCE", "") or ""
    try:
        source = import_string(source_path)
    except ImportError as exc:
        raise AccountingServiceError(
            f"LEDGER_PNL_FALLBACK_SOURCE {source_path!r} cannot be imported"
        ) from exc

    totals = source(start_date, end_date) or {}
    revenue = to_money(totals.get("revenue"))
    cogs = to_money(totals.get("cost_of_goods_sold"))

    logger.info(
        "P&L derived from source records (no ledger postings in period)",
        extra={
            "start_date": str(start_date),
            "end_date": str(end_date),
            "source": source_path,
        },
    )

    revenue_code = code_for(AccountRole.SALES_REVENUE)
    revenue_lines = [StatementLine(revenue_code, "Sales (source records)", revenue, "revenue")]
    return _assemble(start_date, end_date, revenue_lines, cogs, [], SOURCE_RECORDS)


def _assemble(start_date, end_date, revenue_lines, cogs, expense_lines, source) -> ProfitAndLoss:
    total_revenue = to_money(sum((line.amount for line in revenue_lines), ZERO))
    total_expenses = to_money(sum((line.amount for line in expense_lines), ZERO))
    cogs = to_money(cogs)
    gross_profit = to_money(total_revenue - cogs)

    return ProfitAndLoss(
        start_date=start_date,
        end_date=end_date,
        revenue=tuple(revenue_lines),
        total_revenue=total_revenue,
        cost_of_goods_sold=cogs,
        gross_profit=gross_profit,
        expenses=tuple(expense_lines),
        total_expenses=total_expenses,
        net_income=to_money(gross_profit - total_expenses),
        source=source,
    )


def generate_profit_and_loss(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    *,
    allow_fallback: bool = True,
) -> ProfitAndLoss:
    if start_date and end_date and start_date > end_date:
        raise AccountingServiceError("start_date cannot be after end_date")

    fallback_enabled = allow_fallback and getattr(settings, "LEDGER_PNL_FALLBACK_ENABLED", False)
    if fallback_enabled and not has_postings_between(start_date, end_date):
        return _from_source_records(start_date, end_date)

    return _from_ledger(start_date, end_date)
