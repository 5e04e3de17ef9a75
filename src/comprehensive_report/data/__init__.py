"""
Data models and source dataset loading.
"""
