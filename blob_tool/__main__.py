#!/usr/bin/env python3
"""
Entry point for the blob tool CLI.

Run with: python -m blob_tool
"""

from .cli import cli

if __name__ == '__main__':
    cli()
