"""
Configuration loading and metric row mapping.
"""
