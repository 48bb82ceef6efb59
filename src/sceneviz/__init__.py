"""sceneviz: questions answered with LLM-generated, deterministically played 2D animations."""

from sceneviz.cli import cli_main
from sceneviz.server import create_server, main

__all__ = ["cli_main", "create_server", "main"]
