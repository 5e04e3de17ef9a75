"""
Excel formatting utilities for the metric audit workbook.
"""

import xlsxwriter
from typing import Dict, List, Optional


class ExcelFormatter:
    """Excel formats shared by the audit workbook sheets."""

    def __init__(self):
        self.formats = {}

    def add_formats(self, workbook: xlsxwriter.Workbook) -> None:
        """Add standard formats to workbook."""
        self.formats = {
            'title': workbook.add_format({
                'bold': True,
                'font_size': 14,
                'font_color': '#103766',
            }),
            'header': workbook.add_format({
                'bold': True,
                'bg_color': '#4472c4',
                'font_color': 'white',
                'align': 'center',
                'valign': 'vcenter',
                'text_wrap': True,
                'border': 1
            }),
            'label': workbook.add_format({
                'border': 1
            }),
            'total_label': workbook.add_format({
                'bold': True,
                'bg_color': '#dce6f1',
                'border': 1
            }),
            'currency': workbook.add_format({
                'num_format': '#,##0',
                'border': 1
            }),
            'total_currency': workbook.add_format({
                'num_format': '#,##0',
                'bold': True,
                'bg_color': '#dce6f1',
                'border': 1
            }),
            'decimal': workbook.add_format({
                'num_format': '#,##0.00',
                'border': 1
            }),
            'positive_variance': workbook.add_format({
                'bg_color': '#e6ffe6',
                'num_format': '+0.0%;-0.0%;0.0%',
                'border': 1
            }),
            'negative_variance': workbook.add_format({
                'bg_color': '#ffe6e6',
                'num_format': '+0.0%;-0.0%;0.0%',
                'border': 1
            }),
            'neutral': workbook.add_format({
                'align': 'center',
                'font_color': '#808080',
                'border': 1
            }),
        }

    def delta_format(self, change: Optional[float]) -> xlsxwriter.format.Format:
        """Format for a relative change; None means no comparable previous value."""
        if change is None:
            return self.formats['neutral']
        if change < 0:
            return self.formats['negative_variance']
        return self.formats['positive_variance']

    def adjust_column_widths(self, worksheet: xlsxwriter.worksheet.Worksheet,
                             widths: List[int]) -> None:
        """Set column widths left to right."""
        for col, width in enumerate(widths):
            worksheet.set_column(col, col, width)

    def get_summary_formats(self) -> Dict[str, xlsxwriter.format.Format]:
        """Formats used on the summary sheet."""
        return {
            'title': self.formats['title'],
            'header': self.formats['header'],
            'label': self.formats['label'],
            'currency': self.formats['currency'],
        }
