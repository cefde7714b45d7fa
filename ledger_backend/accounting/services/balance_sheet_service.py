# accounting/services/balance_sheet_service.py

"""
BALANCE SHEET SERVICE

As-of snapshot derived from ledger balances (opening + live, completed
entries dated on/before as_of).

Rules:
- Sections: assets, liabilities, equity; lines grouped by account category
- Contra accounts (normal side opposite to their type) reduce their section
- Retained earnings =
      Retained Earnings account balance
    + unclosed earnings through the prior year end (revenue - expenses)
    + current-year net income from the P&L generator (ledger only)
- Asserts assets == liabilities + equity within 0.01. A gap is logged as a
  warning and returned as is_balanced=False + difference; never raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from django.utils import timezone

from accounting.entries import BALANCE_TOLERANCE, ZERO, AccountRole, is_zero, to_money
from accounting.models.account import Account
from accounting.services.account_resolver import code_for
from accounting.services.balance_service import account_balances
from accounting.services.profit_and_loss_service import StatementLine, generate_profit_and_loss

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = {
    Account.ASSET: Account.CATEGORY_CURRENT_ASSETS,
    Account.LIABILITY: Account.CATEGORY_CURRENT_LIABILITIES,
    Account.EQUITY: Account.CATEGORY_EQUITY,
}


@dataclass(frozen=True)
class BalanceSheetSection:
    title: str
    groups: dict
    total: Decimal

    def as_dict(self) -> dict:
        return {
            "title": self.title,
            "groups": {
                category: [line.as_dict() for line in lines]
                for category, lines in self.groups.items()
            },
            "total": str(self.total),
        }


@dataclass(frozen=True)
class BalanceSheet:
    as_of: date
    assets: BalanceSheetSection
    liabilities: BalanceSheetSection
    equity: BalanceSheetSection
    retained_earnings: Decimal
    current_year_net_income: Decimal
    total_liabilities_and_equity: Decimal
    is_balanced: bool
    difference: Decimal

    @property
    def total_assets(self) -> Decimal:
        return self.assets.total

    def as_dict(self) -> dict:
        return {
            "as_of": self.as_of.isoformat(),
            "assets": self.assets.as_dict(),
            "liabilities": self.liabilities.as_dict(),
            "equity": self.equity.as_dict(),
            "retained_earnings": str(self.retained_earnings),
            "current_year_net_income": str(self.current_year_net_income),
            "total_assets": str(self.total_assets),
            "total_liabilities_and_equity": str(self.total_liabilities_and_equity),
            "is_balanced": self.is_balanced,
            "difference": str(self.difference),
        }


def _section(title: str, lines: list[StatementLine]) -> BalanceSheetSection:
    groups: dict[str, list] = {}
    for line in lines:
        groups.setdefault(line.category, []).append(line)
    total = to_money(sum((line.amount for line in lines), ZERO))
    return BalanceSheetSection(
        title=title,
        groups={k: tuple(v) for k, v in groups.items()},
        total=total,
    )


def _prior_unclosed_earnings(prior_year_end: date) -> Decimal:
    """Revenue - expenses accumulated through prior_year_end (opening balances included)."""
    accounts = list(Account.objects.filter(account_type__in=[Account.REVENUE, Account.EXPENSE]))
    balances = account_balances(as_of=prior_year_end, codes=[a.code for a in accounts])

    total = ZERO
    for account in accounts:
        amount = account.natural_amount(balances.get(account.code, ZERO))
        total += amount if account.account_type == Account.REVENUE else -amount
    return to_money(total)


def generate_balance_sheet(as_of: Optional[date] = None) -> BalanceSheet:
    as_of = as_of or timezone.localdate()
    year_start = date(as_of.year, 1, 1)
    prior_year_end = year_start - timedelta(days=1)

    retained_code = code_for(AccountRole.RETAINED_EARNINGS)
    accounts = list(
        Account.objects.filter(
            account_type__in=[Account.ASSET, Account.LIABILITY, Account.EQUITY]
        ).order_by("code")
    )
    balances = account_balances(as_of=as_of, codes=[a.code for a in accounts])

    lines: dict[str, list[StatementLine]] = {
        Account.ASSET: [],
        Account.LIABILITY: [],
        Account.EQUITY: [],
    }
    retained_account_balance = ZERO

    for account in accounts:
        amount = account.natural_amount(balances.get(account.code, ZERO))
        if account.code == retained_code:
            retained_account_balance = amount
            continue
        if not account.is_active and is_zero(amount):
            continue
        lines[account.account_type].append(
            StatementLine(
                code=account.code,
                name=account.name,
                amount=amount,
                category=account.category or DEFAULT_CATEGORY[account.account_type],
            )
        )

    current = generate_profit_and_loss(year_start, as_of, allow_fallback=False)
    retained = to_money(
        retained_account_balance + _prior_unclosed_earnings(prior_year_end) + current.net_income
    )
    lines[Account.EQUITY].append(
        StatementLine(
            code=retained_code,
            name="Retained Earnings",
            amount=retained,
            category=Account.CATEGORY_EQUITY,
        )
    )

    assets = _section("Assets", lines[Account.ASSET])
    liabilities = _section("Liabilities", lines[Account.LIABILITY])
    equity = _section("Equity", lines[Account.EQUITY])

    total_le = to_money(liabilities.total + equity.total)
    difference = to_money(assets.total - total_le)
    is_balanced = abs(difference) <= BALANCE_TOLERANCE

    if not is_balanced:
        logger.warning(
            "Balance sheet does not balance",
            extra={
                "as_of": as_of.isoformat(),
                "total_assets": str(assets.total),
                "total_liabilities_and_equity": str(total_le),
                "difference": str(difference),
            },
        )

    return BalanceSheet(
        as_of=as_of,
        assets=assets,
        liabilities=liabilities,
        equity=equity,
        retained_earnings=retained,
        current_year_net_income=current.net_income,
        total_liabilities_and_equity=total_le,
        is_balanced=is_balanced,
        difference=difference,
    )
