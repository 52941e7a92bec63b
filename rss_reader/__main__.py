"""Main module for rss_reader.

This module allows the reader to be run as a Python module using:
python -m rss_reader

It delegates to the command line interface.
"""

from rss_reader.cli import main

if __name__ == "__main__":
    main()
