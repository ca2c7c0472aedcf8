"""
Owner statement serialization and reports
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict

import pandas as pd

from owner_statement import Statement, create_statement_breakdown


def _money(amount: Decimal) -> float:
    return float(amount)


def format_rate(value: Any) -> str:
    """Format a rate or flat fee without trailing zeros, 25.0 -> 25"""
    return f"{Decimal(str(value)).normalize():f}"


def statement_to_dict(statement: Statement) -> Dict[str, Any]:
    """Convert a statement to the response shape returned to callers"""
    calculations = statement.calculations
    return {
        'property': {
            'id': statement.property.id,
            'name': statement.property.name,
            'ownerDisplayName': statement.property.owner_display_name,
            'isAdminOwned': statement.property.is_admin_owned
        },
        'period': {
            'startDate': statement.period.start_date,
            'endDate': statement.period.end_date
        },
        'calculations': {
            'grossAmount': _money(calculations.gross_amount),
            'portalCommission': _money(calculations.portal_commission),
            'cleaningFee': _money(calculations.cleaning_fee),
            'managementCommission': _money(calculations.management_commission),
            'finalOwnerAmount': _money(calculations.final_owner_amount)
        },
        'invoiceCount': statement.invoice_count,
        'invoices': [
            {
                'id': invoice.id,
                'name': invoice.name,
                'value': _money(invoice.value),
                'date': invoice.date,
                'series': invoice.series
            }
            for invoice in statement.invoices
        ]
    }


def statement_to_json(statement: Statement, indent: int = None) -> str:
    """Serialize a statement to JSON; identical statements give identical text"""
    return json.dumps(statement_to_dict(statement), indent=indent, default=str)


def breakdown_dataframe(statement: Statement) -> pd.DataFrame:
    breakdown_data = []
    for item in create_statement_breakdown(statement):
        breakdown_data.append({
            'Line Item': item['line_item'],
            'Amount': f"€{item['amount']:,.2f}",
            'Type': item['type'].title(),
            'Payout To': item['payout_to']
        })
    return pd.DataFrame(breakdown_data, columns=['Line Item', 'Amount', 'Type', 'Payout To'])


def invoices_dataframe(statement: Statement) -> pd.DataFrame:
    invoice_data = []
    for invoice in statement.invoices:
        invoice_data.append({
            'ID': invoice.id,
            'Name': invoice.name,
            'Date': invoice.date,
            'Series': invoice.series,
            'Value': f"€{invoice.value:,.2f}"
        })
    return pd.DataFrame(invoice_data, columns=['ID', 'Name', 'Date', 'Series', 'Value'])


def generate_csv_content(statement: Statement) -> str:
    return breakdown_dataframe(statement).to_csv(index=False)


def generate_report_content(statement: Statement) -> str:
    """Generate markdown report content"""
    prop = statement.property
    calculations = statement.calculations
    settings = statement.settings

    report = f"""# Owner Statement Report

## Property: {prop.name} (#{prop.id})
**Owner:** {prop.owner_display_name}
**Report Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}
**Period:** {statement.period.start_date} to {statement.period.end_date}

## Executive Summary
- **Invoices:** {statement.invoice_count}
- **Gross Revenue:** €{calculations.gross_amount:,.2f}
- **Total Deductions:** €{calculations.portal_commission + calculations.cleaning_fee + calculations.management_commission:,.2f}
- **Final Owner Amount:** €{calculations.final_owner_amount:,.2f}

## Financial Breakdown

| Line Item | Amount | Type | Payout To |
|-----------|--------|------|-----------|"""

    for item in create_statement_breakdown(statement):
        report += f"\n| {item['line_item']} | €{item['amount']:,.2f} | {item['type'].title()} | {item['payout_to']} |"

    report += f"""

## Calculation Methodology
- **Portal Commission:** {format_rate(settings.portal_commission_percentage)}% of gross revenue
- **Cleaning Fee:** €{format_rate(settings.cleaning_fee_per_invoice)} per invoice ({statement.invoice_count} invoices)
"""

    if prop.is_admin_owned:
        report += "- **Management Commission:** waived, property is admin-owned\n"
    else:
        report += f"""- **Management Commission:** {format_rate(settings.management_fee_percentage)}% of gross revenue after portal commission and cleaning fee

### Management Commission Calculation:
```
Base Amount = €{calculations.gross_amount:,.2f} - €{calculations.portal_commission:,.2f} - €{calculations.cleaning_fee:,.2f}
Management Commission = Base Amount × {format_rate(settings.management_fee_percentage)}% = €{calculations.management_commission:,.2f}
```
"""

    if calculations.final_owner_amount < 0:
        report += """
## ⚠️ NEGATIVE PAYOUT
Deductions exceed gross revenue for this period. Review before paying out.
"""

    report += """
## Invoice Details
| ID | Name | Date | Series | Value |
|----|------|------|--------|-------|"""

    for invoice in statement.invoices:
        report += f"\n| {invoice.id} | {invoice.name} | {invoice.date} | {invoice.series} | €{invoice.value:,.2f} |"

    report += f"""

---
**Generated by:** Owner Statement Generator
**Timestamp:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}
"""

    return report
