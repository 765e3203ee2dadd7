"""Entry point for running db_dump as a module."""

from db_dump.main import cli_entry

if __name__ == "__main__":
    cli_entry()
