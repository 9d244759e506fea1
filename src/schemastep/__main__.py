"""CLI entrypoint for running schemastep as a module."""

from schemastep.cli import cli

if __name__ == "__main__":
    cli()
