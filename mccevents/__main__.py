"""
Package entry point.

Allows running the application via:

    python -m mccevents

This simply forwards execution to mccevents.cli.main().
"""

from mccevents.cli import main

if __name__ == "__main__":
    main()
