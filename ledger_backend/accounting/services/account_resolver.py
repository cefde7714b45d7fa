# accounting/services/account_resolver.py

"""
PATH: accounting/services/account_resolver.py

ACCOUNT RESOLVER (AUTHORITATIVE)

This module answers ONE question:
"Which account should be used for this purpose?"

Design goals:
- deterministic: AccountRole -> code, resolved once and cached
- configurable: settings.LEDGER_ACCOUNT_CODES overrides individual roles
- hard-fail on missing setup (so we don't post to wrong accounts)

NOTE:
If you change LEDGER_ACCOUNT_CODES at runtime (tests, override_settings),
call clear_account_map_cache().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, Mapping

from django.conf import settings

from accounting.entries import AccountRole
from accounting.models.account import Account
from accounting.services.exceptions import AccountResolutionError, InvalidAccountError

logger = logging.getLogger(__name__)

DEFAULT_ROLE_CODES = {
    AccountRole.CASH: "1000",
    AccountRole.BANK: "1010",
    AccountRole.ACCOUNTS_RECEIVABLE: "1100",
    AccountRole.INVENTORY: "1200",
    AccountRole.ACCOUNTS_PAYABLE: "2000",
    AccountRole.OWNER_EQUITY: "3000",
    AccountRole.OPENING_BALANCE_EQUITY: "3050",
    AccountRole.RETAINED_EARNINGS: "3100",
    AccountRole.SALES_REVENUE: "4000",
    AccountRole.OTHER_REVENUE: "4100",
    AccountRole.COST_OF_GOODS_SOLD: "5000",
    AccountRole.OTHER_EXPENSES: "6900",
}


@dataclass(frozen=True)
class AccountMap:
    codes: Mapping[AccountRole, str]

    def code_for(self, role: AccountRole) -> str:
        try:
            return self.codes[AccountRole(role)]
        except (KeyError, ValueError) as exc:
            raise AccountResolutionError(f"No account code mapped for role {role!r}") from exc

    def __getitem__(self, role: AccountRole) -> str:
        return self.code_for(role)


def _parse_role(key) -> AccountRole:
    raw = str(key or "").strip().upper()
    try:
        return AccountRole(raw)
    except ValueError:
        pass
    try:
        return AccountRole[raw]
    except KeyError as exc:
        raise AccountResolutionError(
            f"LEDGER_ACCOUNT_CODES has unknown role {key!r}"
        ) from exc


@lru_cache(maxsize=1)
def get_account_map() -> AccountMap:
    codes = dict(DEFAULT_ROLE_CODES)

    overrides = getattr(settings, "LEDGER_ACCOUNT_CODES", None) or {}
    for key, code in overrides.items():
        code = str(code or "").strip()
        if not code:
            raise AccountResolutionError(f"LEDGER_ACCOUNT_CODES[{key!r}] is blank")
        codes[_parse_role(key)] = code

    return AccountMap(codes=MappingProxyType(codes))


def clear_account_map_cache() -> None:
    get_account_map.cache_clear()


def code_for(role: AccountRole) -> str:
    return get_account_map().code_for(role)


def get_account(code: str) -> Account:
    code = str(code or "").strip()
    try:
        return Account.objects.get(code=code)
    except Account.DoesNotExist as exc:
        raise InvalidAccountError(f"Account {code!r} does not exist") from exc


def get_account_for_role(role: AccountRole) -> Account:
    return get_account(code_for(role))


def get_postable_accounts(codes: Iterable[str]) -> dict[str, Account]:
    """
    Resolve every code in one query; any missing, inactive or header account
    fails the whole lookup.
    """
    wanted = sorted({str(c or "").strip() for c in codes})
    found = {a.code: a for a in Account.objects.filter(code__in=wanted)}

    problems: list[str] = []
    for code in wanted:
        account = found.get(code)
        if account is None:
            problems.append(f"{code!r} not found")
        elif not account.is_active:
            problems.append(f"{code} is inactive")
        elif not account.allow_direct_posting:
            problems.append(f"{code} does not allow direct posting")

    if problems:
        logger.error(
            "Posting rejected: invalid accounts",
            extra={"account_codes": wanted, "problems": problems},
        )
        raise InvalidAccountError("Invalid posting accounts: " + "; ".join(problems))

    return found
