"""
SRS Writer - orchestration core for specialist-driven SRS authoring
"""
__version__ = "0.1.0"
