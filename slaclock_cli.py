#!/usr/bin/env python3
"""
Convenience entry point for running slaclock directly.

Usage: python slaclock_cli.py [command] [options]
"""

from slaclock.cli.app import app

if __name__ == "__main__":
    app()
