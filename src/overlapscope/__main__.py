"""Entry point for `python -m overlapscope`."""

from overlapscope.cli import cli

if __name__ == "__main__":
    cli()
