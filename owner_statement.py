#!/usr/bin/env python3
"""
Owner Statement Engine
Payout breakdown for a property over a reporting period, computed from billed invoices
"""

import logging
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")
# Largest invoice amount taken at face value; anything bigger counts as 0
MAX_AMOUNT = Decimal("1e15")
# Enough digits for sums of MAX_AMOUNT-sized values times the rates
ENGINE_PRECISION = 60
NUMBER_PREFIX = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass(frozen=True)
class Owner:
    """Owner of a property, only the name is shown on statements"""
    name: str
    email: Optional[str] = None


@dataclass(frozen=True)
class Property:
    """Rental property as known to the property store"""
    id: int
    name: str
    is_admin_owned: bool = False
    owner: Optional[Owner] = None

    @property
    def owner_display_name(self) -> str:
        if self.is_admin_owned:
            return "Admin"
        if self.owner is not None and self.owner.name:
            return self.owner.name
        return "Unassigned"


@dataclass(frozen=True)
class Transaction:
    """Invoice issued by the billing service"""
    id: Any
    name: str
    value: Any
    date: Any
    series: Any = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        return cls(
            id=data.get("id"),
            name=data.get("name", ""),
            value=data.get("value"),
            date=data.get("date"),
            series=data.get("series"),
        )


@dataclass(frozen=True)
class Period:
    start_date: Any
    end_date: Any


@dataclass(frozen=True)
class StatementSettings:
    """Fee rates applied when computing a statement"""
    portal_commission_percentage: Decimal = Decimal("15")
    cleaning_fee_per_invoice: Decimal = Decimal("75")
    management_fee_percentage: Decimal = Decimal("25")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StatementSettings":
        defaults = cls()
        return cls(
            portal_commission_percentage=_setting(data, "portal_commission_percentage",
                                                  defaults.portal_commission_percentage),
            cleaning_fee_per_invoice=_setting(data, "cleaning_fee_per_invoice",
                                              defaults.cleaning_fee_per_invoice),
            management_fee_percentage=_setting(data, "management_fee_percentage",
                                               defaults.management_fee_percentage),
        )

    @property
    def portal_commission_rate(self) -> Decimal:
        return self.portal_commission_percentage / 100

    @property
    def management_fee_rate(self) -> Decimal:
        return self.management_fee_percentage / 100


@dataclass(frozen=True)
class StatementProperty:
    id: int
    name: str
    owner_display_name: str
    is_admin_owned: bool


@dataclass(frozen=True)
class StatementCalculations:
    gross_amount: Decimal
    portal_commission: Decimal
    cleaning_fee: Decimal
    management_commission: Decimal
    final_owner_amount: Decimal


@dataclass(frozen=True)
class StatementInvoice:
    id: Any
    name: str
    value: Decimal
    date: Any
    series: Any


@dataclass(frozen=True)
class Statement:
    """Owner statement for one property and one period.

    Built fresh for every request and never modified afterwards.
    """
    property: StatementProperty
    period: Period
    calculations: StatementCalculations
    invoices: Tuple[StatementInvoice, ...] = field(default_factory=tuple)
    settings: StatementSettings = field(default_factory=StatementSettings)

    @property
    def invoice_count(self) -> int:
        return len(self.invoices)


def _setting(data: Dict[str, Any], key: str, default: Decimal) -> Decimal:
    if data.get(key) is None:
        return default
    return Decimal(str(data[key]))


def parse_decimal(value: Any) -> Optional[Decimal]:
    """Parse a monetary value, returning None when it is not a usable number.

    Accepts Decimal, int, float and strings. Strings are read up to the end
    of their leading number, so ``"100 EUR"`` is 100 and ``"1,234.56"`` is 1.
    Floats go through ``str`` so that 0.1 is read as 0.1 rather than its
    binary expansion. Non-finite values and amounts of MAX_AMOUNT or more
    are rejected.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, Decimal):
            parsed = value
        elif isinstance(value, (int, float)):
            parsed = Decimal(str(value))
        elif isinstance(value, str):
            match = NUMBER_PREFIX.match(value)
            if match is None:
                return None
            parsed = Decimal(match.group(0).strip())
        else:
            return None
    except (ArithmeticError, ValueError):
        return None
    if not parsed.is_finite() or abs(parsed) >= MAX_AMOUNT:
        return None
    return parsed


def _normalize_zero(amount: Decimal) -> Decimal:
    # -0.00 becomes 0.00
    return amount if amount else abs(amount)


def round_money(amount: Decimal) -> Decimal:
    """Round to cents, halves away from zero"""
    return _normalize_zero(amount.quantize(CENT, rounding=ROUND_HALF_UP))


def _invoice_value(transaction: Transaction) -> Decimal:
    parsed = parse_decimal(transaction.value)
    if parsed is None:
        logger.warning(
            "Invoice %s has an unusable value %r, counting it as 0",
            transaction.id, transaction.value,
        )
        return ZERO
    if isinstance(transaction.value, str) and NUMBER_PREFIX.fullmatch(transaction.value.strip()) is None:
        logger.warning(
            "Invoice %s value %r has trailing text, reading it as %s",
            transaction.id, transaction.value, parsed,
        )
    return parsed


def calculate_management_commission(gross_amount: Decimal, portal_commission: Decimal,
                                    cleaning_fee: Decimal, is_admin_owned: bool,
                                    management_fee_rate: Decimal) -> Decimal:
    """Management commission on what is left after portal commission and cleaning.

    Waived for admin-owned properties. Not floored at zero.
    """
    if is_admin_owned:
        return ZERO
    return (gross_amount - cleaning_fee - portal_commission) * management_fee_rate


def generate_statement(property: Property, transactions: Iterable[Transaction], period: Period,
                       settings: Optional[StatementSettings] = None) -> Statement:
    """Compute the owner statement for ``property`` over ``period``.

    Malformed invoice values count as 0 and never raise. The final owner
    amount is derived from the rounded components so the payout identity
    holds exactly on the published figures.
    """
    settings = settings or StatementSettings()
    transactions = list(transactions)
    values = [_invoice_value(t) for t in transactions]

    with localcontext() as ctx:
        ctx.prec = ENGINE_PRECISION

        gross_amount = sum(values, ZERO)
        portal_commission = gross_amount * settings.portal_commission_rate
        cleaning_fee = len(transactions) * settings.cleaning_fee_per_invoice
        management_commission = calculate_management_commission(
            gross_amount,
            portal_commission,
            cleaning_fee,
            property.is_admin_owned,
            settings.management_fee_rate,
        )

        gross_amount = round_money(gross_amount)
        portal_commission = round_money(portal_commission)
        cleaning_fee = round_money(cleaning_fee)
        management_commission = round_money(management_commission)
        final_owner_amount = _normalize_zero(
            gross_amount - portal_commission - cleaning_fee - management_commission
        )

    invoices = tuple(
        StatementInvoice(id=t.id, name=t.name, value=value, date=t.date, series=t.series)
        for t, value in zip(transactions, values)
    )

    return Statement(
        property=StatementProperty(
            id=property.id,
            name=property.name,
            owner_display_name=property.owner_display_name,
            is_admin_owned=property.is_admin_owned,
        ),
        period=Period(start_date=period.start_date, end_date=period.end_date),
        calculations=StatementCalculations(
            gross_amount=gross_amount,
            portal_commission=portal_commission,
            cleaning_fee=cleaning_fee,
            management_commission=management_commission,
            final_owner_amount=final_owner_amount,
        ),
        invoices=invoices,
        settings=settings,
    )


def create_statement_breakdown(statement: Statement) -> List[Dict[str, Any]]:
    """Create detailed breakdown for the owner statement"""
    calculations = statement.calculations
    breakdown = [
        {
            'line_item': 'Gross Revenue',
            'amount': calculations.gross_amount,
            'type': 'income',
            'payout_to': 'N/A'
        },
        {
            'line_item': 'Portal Commission',
            'amount': ZERO - calculations.portal_commission,
            'type': 'expense',
            'payout_to': 'Booking Portal'
        },
        {
            'line_item': 'Cleaning Fee',
            'amount': ZERO - calculations.cleaning_fee,
            'type': 'expense',
            'payout_to': 'Management Company'
        },
        {
            'line_item': 'Management Commission',
            'amount': ZERO - calculations.management_commission,
            'type': 'expense',
            'payout_to': 'Management Company'
        },
        {
            'line_item': 'Final Owner Amount',
            'amount': calculations.final_owner_amount,
            'type': 'payout',
            'payout_to': statement.property.owner_display_name
        }
    ]

    if statement.property.is_admin_owned:
        del breakdown[3]

    return breakdown


class OwnerStatementProcessor:
    def __init__(self, config_data: Dict[str, Any] = None):
        """Initialize the processor with configuration"""
        self.config = config_data or self.get_default_config()
        self.default_settings = self.config.get('default_settings', {})
        self.property_overrides = self.config.get('property_overrides', {})

    def get_default_config(self):
        """Get default configuration"""
        return {
            "default_settings": {
                "portal_commission_percentage": 15,
                "cleaning_fee_per_invoice": 75,
                "management_fee_percentage": 25
            },
            "property_overrides": {}
        }

    def get_property_settings(self, property_id: int) -> StatementSettings:
        """Get fee settings for a specific property"""
        settings = dict(self.default_settings)
        settings.update(self.property_overrides.get(str(property_id), {}))
        return StatementSettings.from_dict(settings)

    def generate_statement(self, property: Property, transactions: Iterable[Transaction],
                           period: Period) -> Statement:
        """Generate the statement using the property's configured rates"""
        return generate_statement(property, transactions, period,
                                  self.get_property_settings(property.id))
