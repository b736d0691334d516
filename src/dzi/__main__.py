"""Allow ``python -m dzi``."""

from dzi.cli.main import app

app()
