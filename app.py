"""Main entry point for the application."""

import os

from kickabout import create_app

app = create_app()


if __name__ == "__main__":
    app.run(
        debug=os.environ.get("FLASK_DEBUG") == "1",
        host="0.0.0.0",  # nosec
        port=int(os.environ.get("PORT") or 5000),
    )
