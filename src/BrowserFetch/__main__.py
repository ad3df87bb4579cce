"""Allow ``python -m BrowserFetch``."""

from .cli import app

if __name__ == "__main__":
    app()
