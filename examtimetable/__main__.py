"""
Package entry point.

Allows running the application via:

    python -m examtimetable

This simply forwards execution to examtimetable.cli.main().
"""

from examtimetable.cli import main

if __name__ == "__main__":
    main()
