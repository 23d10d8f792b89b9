#!/usr/bin/env python3
"""
Example client for the XSD Typegen API.

Parses a schema, generates TypeScript classes for it and expands a pattern
facet, printing each result.
"""

import json
import sys
from pathlib import Path
from typing import Dict, Optional

import httpx


class XsdTypegenClient:
    """Client for interacting with the XSD Typegen API."""

    def __init__(self, base_url: str = "http://localhost:8000"):
        """Initialize the client with the API base URL."""
        self.base_url = base_url
        self.client = httpx.Client(base_url=base_url, timeout=30.0)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - close the client."""
        self.client.close()

    def get_health(self) -> Dict:
        """Check API health status."""
        response = self.client.get("/health")
        response.raise_for_status()
        return response.json()

    def get_ast(self, xsd: str, schema_name: Optional[str] = None) -> Dict:
        """
        Parse XSD text on the server.

        Args:
            xsd: Schema document text
            schema_name: Optional name of the schema node

        Returns:
            Dict with the AST (``node``) and the class order (``classes``)
        """
        payload = {"xsd": xsd}
        if schema_name:
            payload["schema_name"] = schema_name
        response = self.client.post("/ast", json=payload)
        response.raise_for_status()
        return response.json()

    def generate(self, xsd: str, dependencies: Optional[Dict[str, str]] = None) -> str:
        """Generate TypeScript source for XSD text."""
        response = self.client.post(
            "/generate", json={"xsd": xsd, "dependencies": dependencies or {}}
        )
        response.raise_for_status()
        return response.json()["source"]

    def expand_pattern(self, pattern: str, type_name: str = "string") -> str:
        """Expand a pattern facet into a literal union."""
        response = self.client.post("/regexp/alias", json={"pattern": pattern, "type": type_name})
        response.raise_for_status()
        return response.json()["alias"]


def main():
    """Demonstrate API usage."""
    xsd_path = Path(sys.argv[1]) if len(sys.argv) > 1 else None

    with XsdTypegenClient() as client:
        print("=== Health ===")
        print(json.dumps(client.get_health(), indent=2))

        print("\n=== Pattern expansion ===")
        for pattern in ("A|B|C", "[0-2]", "(EUR|USD)[12]"):
            print(f"{pattern:>16} -> {client.expand_pattern(pattern)}")

        if xsd_path is None:
            print("\nPass a schema file to parse and generate classes for it.")
            return

        xsd = xsd_path.read_text(encoding="utf-8")
        print(f"\n=== Classes in {xsd_path} ===")
        ast = client.get_ast(xsd)
        for name in ast["classes"]:
            print(f"  {name}")

        print("\n=== Generated TypeScript ===")
        print(client.generate(xsd))


if __name__ == "__main__":
    main()
