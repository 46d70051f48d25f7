"""Project root entry point for launching the web API."""

from __future__ import annotations

import os


def main():
    from lingoshield.web import create_app

    app = create_app()
    port = int(os.environ.get("LINGOSHIELD_PORT", "5500"))
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("LINGOSHIELD_DEBUG") == "1")


if __name__ == "__main__":
    main()
