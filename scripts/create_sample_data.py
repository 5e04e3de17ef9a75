#!/usr/bin/env python3
"""
Create a sample division workbook for trying the export offline.
"""

import numpy as np
import pandas as pd
from pathlib import Path
import sys

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from comprehensive_report.config.metric_mapping import MetricMapper
from comprehensive_report.data.models import ALL_MONTHS

MATRIX_ROWS = 60

# Monthly base amounts per metric, before noise
BASE_AMOUNTS = {
    'sales': 4_500_000,
    'materialCost': 2_700_000,
    'salesVolume': 380_000,
    'productionVolume': 395_000,
    'labour': 210_000,
    'depreciation': 150_000,
    'electricity': 95_000,
    'othersMfgOverheads': 60_000,
    'sellingExpenses': 120_000,
    'transportation': 80_000,
    'administration': 140_000,
    'bankInterest': 45_000,
    'netProfit': 520_000,
    'ebitda': 720_000,
}


def create_sample_data(division: str = "FP", seed: int = 42) -> str:
    """Create a division matrix workbook: header rows 0-2, metric rows from 3."""
    rng = np.random.default_rng(seed)
    mapper = MetricMapper()

    columns = [(2024, month, 'Actual') for month in ALL_MONTHS]
    columns += [(2025, month, 'Actual') for month in ALL_MONTHS[:6]]
    columns += [(2025, month, 'Budget') for month in ALL_MONTHS]

    matrix = np.full((MATRIX_ROWS, len(columns) + 1), None, dtype=object)
    matrix[0, 0], matrix[1, 0], matrix[2, 0] = 'Year', 'Month', 'Type'
    for col, (year, month, data_type) in enumerate(columns, 1):
        matrix[0, col] = year
        matrix[1, col] = month
        matrix[2, col] = data_type

    for name, base in BASE_AMOUNTS.items():
        info = mapper.get_metric_info(name)
        matrix[info.row_index, 0] = info.label
        growth = np.array([1.06 if year == 2025 else 1.0 for year, _, _ in columns])
        noise = rng.normal(1.0, 0.08, len(columns))
        matrix[info.row_index, 1:] = np.round(base * growth * noise, 0)

    # Totals are the sum of their component rows
    for group in ('manufacturing', 'below_gp'):
        total = mapper.get_total_metric(group)
        parts = [mapper.get_row_index(name) for name in mapper.get_metrics_by_group(group, include_totals=False)]
        matrix[mapper.get_row_index(total), 0] = mapper.get_metric_info(total).label
        matrix[mapper.get_row_index(total), 1:] = matrix[parts, 1:].astype(float).sum(axis=0)

    df = pd.DataFrame(matrix)

    output_path = Path(__file__).parent.parent / "data" / "raw" / f"sample_{division}_division.xlsx"
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name=division, index=False, header=False)

    print(f"Sample data created: {output_path}")
    return str(output_path)


if __name__ == "__main__":
    create_sample_data(*sys.argv[1:2])
