#!/usr/bin/env python3
"""
Project-level CLI launcher.

Usage:
    python docucast_cli.py <command> [options]
"""

from docucast.cli.main import main


if __name__ == "__main__":
    raise SystemExit(main())
