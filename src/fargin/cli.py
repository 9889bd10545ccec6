"""CLI for fargin.

Convention-based: every command takes ``--path`` (default: current
directory) and discovers .fargin/ by walking up from there.

Usage:
    fargin init --name demo                       # Create .fargin/
    fargin validate                               # Structure and config checks
    fargin progress                               # Goals and progress markers
    fargin goal add "Ship v1"                     # Record a goal
    fargin marker add mvp -d "First release"      # Add a progress marker
    fargin marker complete mvp                    # Complete it
    fargin suggest --type documentation           # Next-step suggestions
    fargin docs --format json                     # LLM-oriented project guide
    fargin reset --force                          # Remove .fargin/
    fargin howto check -v detailed                # Built-in usage guide
    fargin fact add prompt "..." -t api           # Record a prompt
    fargin fact search api                        # Search facts
    fargin feature add "Login" -p High            # Create a feature
    fargin feature update <id> --status in_progress
    fargin design create "Auth flow"              # New design document
    fargin check run                              # format, lint, test
    fargin check progress -v detailed -o html     # Health summary
"""

from __future__ import annotations

import click

from fargin import __version__
from fargin.cli_commands import check, designs, facts, features, project


@click.group()
@click.version_option(version=__version__, prog_name="fargin")
def cli() -> None:
    """fargin: project records and dev-cycle checks for LLM-driven development."""


project.register(cli)
features.register(cli)
facts.register(cli)
designs.register(cli)
check.register(cli)
