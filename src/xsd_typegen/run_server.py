"""Executable entry point for launching the XSD Typegen FastAPI application.

This module is intentionally minimal so that process managers (uvicorn / gunicorn /
ASGI workers) can import a stable `app` object from `xsd_typegen.app` OR run
`python -m xsd_typegen.run_server` directly for local development.

Environment Variables:
    PORT (int): Override listening port (default 8000).
    XSD_TYPEGEN_CONFIG (str): Grammar configuration pairs, e.g.
        ``schema_name=orders,regexp_max_length=20``.

Example:
    $ python -m xsd_typegen.run_server
    $ PORT=9000 python -m xsd_typegen.run_server
"""

from __future__ import annotations

import os

import uvicorn

from .app import app


def main() -> None:
    """Launch the ASGI server with development-friendly defaults.

    Reads the ``PORT`` environment variable (default 8000).
    """
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))


if __name__ == "__main__":
    main()
