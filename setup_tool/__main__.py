#!/usr/bin/env python3
"""
Entry point for the Revify admin CLI.

Run with: python -m setup_tool
"""

from .cli import cli

if __name__ == '__main__':
    cli()
