"""Allow ``python -m cosmic_mcp``."""

from cosmic_mcp.cli import cli

if __name__ == "__main__":
    cli()
