"""CLI package for querying the moisture analytics service.

The Typer application is ``cli.app:app``. It is not re-exported here so that
``cli.app`` keeps resolving to the module that tests patch.
"""
