"""Command line reports over a directory of P1 telegram logs."""

# The Typer application lives in ``cli.app``; tests patch attributes on that
# module path, so it is not re-exported here.

__all__: list[str] = []
