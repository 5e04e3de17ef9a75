"""
Metric recomputation from the raw division dataset.
"""

from .recompute import MetricRecomputer, compute_cell_value, sanitize_numeric

__all__ = ['MetricRecomputer', 'compute_cell_value', 'sanitize_numeric']
