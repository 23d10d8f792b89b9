#!/usr/bin/env python
"""Write the OpenAPI document of the xsd-typegen HTTP service.

The document describes the ``/ast``, ``/generate`` and ``/regexp/alias``
endpoints together with their request and response models, so clients can
be generated without starting the server.

Usage:
    python scripts/export_schemas.py --out-dir build/schemas

Outputs:
    openapi.json              OpenAPI document of xsd_typegen.app
"""
from __future__ import annotations

import argparse
import json
from pathlib import Path

from xsd_typegen import __version__
from xsd_typegen.app import app


def export_openapi(out_dir: Path) -> Path:
    document = app.openapi()
    path = out_dir / "openapi.json"
    path.write_text(json.dumps(document, indent=2) + "\n")
    return path


def main():
    parser = argparse.ArgumentParser(description="Export the xsd-typegen service OpenAPI document")
    parser.add_argument("--out-dir", default="build/schemas", help="Directory receiving openapi.json")
    args = parser.parse_args()

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    openapi_path = export_openapi(out_dir)
    print(f"Exported xsd-typegen {__version__} OpenAPI -> {openapi_path}")


if __name__ == "__main__":  # pragma: no cover
    main()
