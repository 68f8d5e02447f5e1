"""CLI command modules for index-upgrade.

Each module holds one or more Typer command functions; they are registered
on the app in ``index_upgrade/__init__.py``.
"""
