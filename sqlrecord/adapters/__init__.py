"""Database adapters.

Backend adapters are imported from their own subpackages so that optional
drivers are only required when used.
"""
