"""CLI for timeslab."""

# Import commands to register them with the app
# These imports have side effects (registering commands with @app.command())
from timeslab.cli.commands import list as _list_module  # noqa: F401
from timeslab.cli.commands import status as _status_module  # noqa: F401
from timeslab.cli.main import app, main


__all__ = ["app", "main"]
