"""
Schema form engine.
Flattens JSON Schema documents into ordered form fields and drives the
recursive nested-object creation workflow.
"""

__version__ = "1.0.0"
