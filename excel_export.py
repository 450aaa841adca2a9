"""
Excel export functionality for TripLedger
"""
from __future__ import annotations
import logging
from typing import Iterable, Optional, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter

from config import minor_units
from currency import normalize_expense
from models import Entity, Expense, Summary
from utils import round_money

logger = logging.getLogger(__name__)


def _style_header(ws, row=1):
    """Apply header styling to worksheet row"""
    header_font = Font(bold=True, color="FFFFFF")
    fill = PatternFill("solid", fgColor="4F81BD")
    align = Alignment(horizontal="center", vertical="center")
    thin = Side(style="thin", color="A0A0A0")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    for cell in ws[row]:
        cell.font = header_font
        cell.fill = fill
        cell.alignment = align
        cell.border = border


def _autosize_columns(ws, min_width=10, max_width=45):
    """Auto-size columns based on content"""
    for col in range(1, ws.max_column + 1):
        letter = get_column_letter(col)
        max_len = 0
        for cell in ws[letter]:
            if cell.value is None:
                continue
            max_len = max(max_len, len(str(cell.value)))
        ws.column_dimensions[letter].width = max(min_width, min(max_width, max_len + 2))


def _money_format(places: int) -> str:
    return "0." + "0" * places if places > 0 else "0"


def _format_columns(ws, columns: Sequence[int], places: int, first_row: int = 2):
    fmt = _money_format(places)
    for r in range(first_row, ws.max_row + 1):
        for c in columns:
            ws.cell(r, c).number_format = fmt


def export_excel(
    summary: Summary,
    expenses: Sequence[Expense],
    filepath: str,
    entities: Optional[Iterable[Entity]] = None,
) -> None:
    """
    Export a trip summary to an Excel file with three sheets:
    - Balances (paid, owed, net per entity)
    - Transfers (suggested settlements)
    - Expenses (original and base-currency amounts)
    Values are rounded to the base currency's minor unit when written.
    """
    wb = Workbook()
    # remove default sheet
    wb.remove(wb.active)

    places = minor_units(summary.base_currency)
    names = {b.ref: b.display_name for b in summary.participants}
    for e in entities or ():
        names.setdefault(e.ref, e.display_name)

    # Balances sheet
    ws = wb.create_sheet("Balances")
    ws.append(["Entity", "Type", "Paid", "Owed", "Net (Paid-Owed)"])
    _style_header(ws, 1)
    ws.freeze_panes = "A2"
    for b in summary.participants:
        ws.append([
            b.display_name,
            b.entity_type.value,
            float(round_money(b.total_paid, places)),
            float(round_money(b.total_owed, places)),
            float(round_money(b.net_balance, places)),
        ])
    ws.append([])
    ws.append(["TOTAL EXPENSES", summary.base_currency, float(round_money(summary.total_expenses, places))])
    ws.cell(ws.max_row, 1).font = Font(bold=True)
    _format_columns(ws, [3, 4, 5], places)
    _autosize_columns(ws)

    # Transfers sheet
    ws = wb.create_sheet("Transfers")
    ws.append(["From (Debtor)", "To (Creditor)", "Amount"])
    _style_header(ws, 1)
    ws.freeze_panes = "A2"
    for t in summary.suggested_settlements:
        ws.append([
            names.get(t.from_entity, t.from_entity.entity_id),
            names.get(t.to_entity, t.to_entity.entity_id),
            float(round_money(t.amount, places)),
        ])
    _format_columns(ws, [3], places)
    _autosize_columns(ws)

    # Expenses sheet
    ws = wb.create_sheet("Expenses")
    ws.append(["Date", "Description", "Category", "Paid by", "Amount", "Currency", "Rate",
               f"Amount ({summary.base_currency})"])
    _style_header(ws, 1)
    ws.freeze_panes = "A2"
    for e in sorted(expenses, key=lambda e: (e.date, e.id)):
        ws.append([
            e.date,
            e.description,
            e.category,
            names.get(e.paid_by, e.paid_by.entity_id),
            float(round_money(e.amount, minor_units(e.currency))),
            e.currency,
            float(e.exchange_rate_to_base),
            float(round_money(normalize_expense(e, summary.base_currency).amount, places)),
        ])
    _format_columns(ws, [8], places)
    _autosize_columns(ws)

    wb.save(filepath)
    logger.info("Exported Excel report for trip %s to %s", summary.trip_id, filepath)
