"""Main entry point for the JalSetu API."""

from jalsetu.server import main

if __name__ == "__main__":
    main()
