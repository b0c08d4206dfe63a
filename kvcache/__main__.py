"""Main entry point when executing kvcache as a package.

This allows running the package using python -m kvcache.
"""

from kvcache.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
