"""Allow ``python -m graceful_api``."""

from graceful_api.server import main

if __name__ == "__main__":
    main()
