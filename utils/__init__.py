"""Library App - Utilities Package

Helpers shared by the API and the CLI:
- Book field validation (validators.py)
- CLI output rendering (ui_helpers.py)
"""
