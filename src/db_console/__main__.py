"""Entry point for running db_console as a module."""

from db_console.server import cli_entry

if __name__ == "__main__":
    cli_entry()
