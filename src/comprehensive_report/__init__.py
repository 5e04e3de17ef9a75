"""
Comprehensive Report Export

Walks a live divisional dashboard, captures each of its report views once their
data has loaded, recomputes the figures they display from the source dataset and
assembles everything into a single self-contained HTML report.
"""

__version__ = "1.0.0"
__author__ = "Your Organization"
