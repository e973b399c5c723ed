"""
Terminal reporting for CLI commands.

Modules
-------
formatters : ASCII tables for ranked recommendations, score breakdowns and
             the task catalog.
"""
