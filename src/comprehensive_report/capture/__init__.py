"""
Live dashboard capture: readiness polling, style extraction and view orchestration.
"""
