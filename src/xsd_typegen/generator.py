"""Write generated TypeScript sources for an XSD file to disk.

Example:
        from xsd_typegen.generator import generate_template_classes_from_xsd

        path = generate_template_classes_from_xsd(
            "schemas/orders.xsd",
            out_dir="src/generated",
            dependencies={"dep": "./types"},
        )
        print(path)   # src/generated/orders.ts
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

from .class_generator import ClassGenerator, GeneratorOptions

logger = logging.getLogger(__name__)

DEFAULT_OUT_DIR = "src/generated"

DEFAULT_TSCONFIG = {
    "compilerOptions": {
        "module": "esnext",
        "target": "esnext",
        "sourceMap": True,
        "declaration": True,
        "declarationDir": "../../",
        "outDir": "../../",
    },
    "exclude": ["node_modules"],
}


class GenerationError(RuntimeError):
    """Raised when classes cannot be generated for a schema file.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, message: str, xsd_path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.xsd_path = xsd_path


def default_schema_name(xsd_path: Path) -> str:
    """Schema name derived from a file name (`my-schema.xsd` -> `my_schema`)."""
    return re.sub(r"\W", "_", xsd_path.stem)


def disclaimer(xsd_path: Path, generated_at: Optional[datetime] = None) -> str:
    stamp = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    return "\n".join(
        [
            "/***********",
            f"Generated template classes for {xsd_path}",
            f"Generated on: {stamp}",
            "***********/",
        ]
    )


def generate_template_classes_from_xsd(
    xsd_path: Union[str, Path],
    out_dir: Union[str, Path] = DEFAULT_OUT_DIR,
    dependencies: Optional[Dict[str, str]] = None,
    options: Optional[GeneratorOptions] = None,
) -> Path:
    """Generate ``<stem>.ts``, ``index.ts`` and ``tsconfig.json`` for a schema.

    Args:
        xsd_path: Schema file to read.
        out_dir: Directory receiving the generated files (created if missing).
        dependencies: Namespace alias to module path; overrides the
            dependencies of ``options`` when given.
        options: Generator options. The schema name defaults to the file stem
            with non word characters replaced by ``_``.

    Returns:
        Path of the generated ``.ts`` file.

    Raises:
        GenerationError: If reading, parsing, emitting or writing fails.
    """
    xsd_path = Path(xsd_path)
    out_path = Path(out_dir)
    options = options or GeneratorOptions(schema_name=default_schema_name(xsd_path))
    if dependencies is not None:
        options = replace(options, dependencies=dict(dependencies))

    try:
        xsd_text = xsd_path.read_text(encoding="utf-8")
        generator = ClassGenerator(options)
        source = generator.generate_class_file(xsd_text)

        out_path.mkdir(parents=True, exist_ok=True)
        ts_file = out_path / f"{xsd_path.stem}.ts"
        ts_file.write_text(f"{disclaimer(xsd_path)}\n\n{source}", encoding="utf-8")
        (out_path / "index.ts").write_text(f"export * from './{xsd_path.stem}';\n", encoding="utf-8")
        (out_path / "tsconfig.json").write_text(json.dumps(DEFAULT_TSCONFIG, indent=2) + "\n", encoding="utf-8")
    except (OSError, ValueError) as exc:
        logger.error("Generation failed for %s: %s", xsd_path, exc)
        raise GenerationError(f"Failed to generate classes from {xsd_path}", xsd_path) from exc

    logger.info("Generated %d classes for %s into %s", len(generator.types), xsd_path, ts_file)
    return ts_file
