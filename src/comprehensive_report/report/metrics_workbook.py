"""
Metric audit workbook: the recomputed dataset as an Excel sheet.

Lets a reader reconcile the figures printed in the HTML report against the
division workbook they came from.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import xlsxwriter

from comprehensive_report.config.metric_mapping import MetricMapper
from comprehensive_report.data.models import ExportContext, MetricDataset
from comprehensive_report.report.formatter import ExcelFormatter
from comprehensive_report.utils.calculations import consecutive_deltas

DERIVED_METRICS = [
    ('marginPerKg', 'Margin over Material per kg'),
    ('ebit', 'EBIT'),
]


class MetricsWorkbookWriter:
    """Writes a MetricDataset to an .xlsx audit file with xlsxwriter."""

    def __init__(self, mapper: Optional[MetricMapper] = None):
        self.mapper = mapper or MetricMapper()
        self.formatter = ExcelFormatter()
        self.logger = logging.getLogger(__name__)

    def write(self, dataset: MetricDataset, output_file: str,
              context: Optional[ExportContext] = None) -> Path:
        """
        Write the audit workbook.

        Args:
            dataset: Recomputed metric dataset
            output_file: Target .xlsx path
            context: Export context, used for the summary sheet

        Returns:
            Path of the written workbook
        """
        path = Path(output_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.logger.info(f"Writing metric audit workbook: {path}")

        workbook = xlsxwriter.Workbook(str(path))
        try:
            self.formatter.add_formats(workbook)
            self._write_summary(workbook, dataset, context)
            self._write_metrics(workbook, dataset)
        finally:
            workbook.close()

        self.logger.info(f"Metric audit workbook written with {len(dataset.periods)} periods")
        return path

    def _metric_rows(self) -> List[tuple]:
        rows = []
        for name in self.mapper.metric_names:
            info = self.mapper.get_metric_info(name)
            rows.append((name, info.label, info.is_total))
        for name, label in DERIVED_METRICS:
            rows.append((name, label, False))
        return rows

    def _write_summary(self, workbook: xlsxwriter.Workbook, dataset: MetricDataset,
                       context: Optional[ExportContext]) -> None:
        worksheet = workbook.add_worksheet('Summary')
        formats = self.formatter.get_summary_formats()

        worksheet.write(0, 0, 'Comprehensive Report - Metric Audit', formats['title'])
        details = [
            ('Division', context.division if context else ''),
            ('Generated', datetime.now().strftime('%Y-%m-%d %H:%M')),
            ('Periods', len(dataset.periods)),
        ]
        if context is not None:
            base = context.base_period
            details.append(('Base period', base.display_label if base else ''))
            details.append(('Warnings', len(context.warnings)))

        for row, (label, value) in enumerate(details, 2):
            worksheet.write(row, 0, label, formats['header'])
            worksheet.write(row, 1, value, formats['label'])

        if context is not None and context.warnings:
            start = len(details) + 3
            worksheet.write(start, 0, 'Warning', formats['header'])
            for offset, message in enumerate(context.warnings, 1):
                worksheet.write(start + offset, 0, message, formats['label'])

        self.formatter.adjust_column_widths(worksheet, [18, 60])

    def _write_metrics(self, workbook: xlsxwriter.Workbook, dataset: MetricDataset) -> None:
        worksheet = workbook.add_worksheet('Metrics')
        periods = dataset.periods

        # Layout: label | one value column per period | one delta column per later period
        headers = ['Metric'] + [p.display_label for p in periods]
        headers += [f"{periods[i].display_label} vs {periods[i - 1].display_label}" for i in range(1, len(periods))]
        for col, header in enumerate(headers):
            worksheet.write(0, col, header, self.formatter.formats['header'])

        for row, (name, label, is_total) in enumerate(self._metric_rows(), 1):
            values = dataset.series(name)
            label_format = self.formatter.formats['total_label' if is_total else 'label']
            worksheet.write(row, 0, label, label_format)

            if name == 'marginPerKg':
                value_format = self.formatter.formats['decimal']
            else:
                value_format = self.formatter.formats['total_currency' if is_total else 'currency']
            for col, value in enumerate(values, 1):
                worksheet.write_number(row, col, value, value_format)

            for offset, delta in enumerate(consecutive_deltas(values)[1:]):
                col = 1 + len(periods) + offset
                if delta is None:
                    worksheet.write(row, col, 'n/a', self.formatter.delta_format(None))
                else:
                    worksheet.write_number(row, col, delta / 100, self.formatter.delta_format(delta))

        widths = [32] + [16] * len(periods) + [24] * max(len(periods) - 1, 0)
        self.formatter.adjust_column_widths(worksheet, widths)
        worksheet.freeze_panes(1, 1)
