"""
CLI commands for XSD to TypeScript generation.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .class_generator import CLASS_PREFIX, GeneratorOptions
from .generator import (
    DEFAULT_OUT_DIR,
    GenerationError,
    default_schema_name,
    generate_template_classes_from_xsd,
)
from .hierarchy import InheritanceCycleError, sort_classes_by_hierarchy
from .regexp2alias import MAX_LENGTH, regexp_pattern2type_alias
from .xsd_grammar import GrammarConfig, InvalidSchemaError, class_nodes, parse_xsd

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def parse_dependencies(pairs):
    """Turn ``ns=path`` strings into a dependency mapping."""
    dependencies = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise argparse.ArgumentTypeError(f"dependency must look like ns=path, got {pair!r}")
        alias, path = pair.split("=", 1)
        dependencies[alias.strip()] = path.strip()
    return dependencies


def cmd_generate(args):
    """Generate TypeScript classes for one or more schema files."""
    setup_logging(args.verbose)

    dependencies = parse_dependencies(args.dependency)
    failures = 0
    for xsd in args.xsd:
        xsd_path = Path(xsd)
        options = GeneratorOptions(
            dependencies=dependencies,
            class_prefix=args.class_prefix,
            schema_name=args.schema_name or default_schema_name(xsd_path),
            default_namespace=args.namespace,
            regexp_max_length=args.max_length,
        )
        try:
            ts_file = generate_template_classes_from_xsd(xsd_path, args.out_dir, options=options)
        except GenerationError as e:
            logger.error("%s: %s", e, e.__cause__)
            print(f"✗ {xsd_path}: {e.__cause__}")
            failures += 1
            continue
        print(f"✓ Generated {ts_file}")
    return 1 if failures else 0


def cmd_ast(args):
    """Print the parsed AST of a schema as JSON."""
    setup_logging(args.verbose)

    config = GrammarConfig(
        schema_name=args.schema_name or default_schema_name(Path(args.xsd)),
        default_namespace=args.namespace,
        regexp_max_length=args.max_length,
    )
    try:
        ast = parse_xsd(args.xsd, config)
        ordered = sort_classes_by_hierarchy(class_nodes(ast))
    except (OSError, InvalidSchemaError, InheritanceCycleError) as e:
        print(f"✗ {args.xsd}: {e}")
        return 1

    payload = {"node": ast.to_dict(), "classes": [node.name for node in ordered]}
    print(json.dumps(payload, indent=2))
    return 0


def cmd_alias(args):
    """Expand a pattern into a literal union."""
    setup_logging(args.verbose)
    print(regexp_pattern2type_alias(args.pattern, args.type, args.max_length))
    return 0


def _add_grammar_options(parser):
    parser.add_argument("--schema-name", help="Name of the schema node (default: file stem)")
    parser.add_argument("--namespace", help="Namespace for unqualified type references")
    parser.add_argument(
        "--max-length",
        type=int,
        default=MAX_LENGTH,
        help=f"Longest literal expanded from pattern facets (default: {MAX_LENGTH})"
    )


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="Generate TypeScript classes from XML Schema definitions",
        prog="xsd-typegen"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands"
    )

    # Generate command
    generate_parser = subparsers.add_parser(
        "generate",
        help="Write <name>.ts, index.ts and tsconfig.json for schema files"
    )
    generate_parser.add_argument("xsd", nargs="+", help="Schema files")
    generate_parser.add_argument(
        "-o", "--out-dir",
        default=DEFAULT_OUT_DIR,
        help=f"Output directory (default: {DEFAULT_OUT_DIR})"
    )
    generate_parser.add_argument(
        "-d", "--dependency",
        action="append",
        metavar="NS=PATH",
        help="Import namespace NS from module PATH (repeatable)"
    )
    generate_parser.add_argument(
        "--class-prefix",
        default=CLASS_PREFIX,
        help=f"Prefix of the @class discriminator (default: {CLASS_PREFIX})"
    )
    _add_grammar_options(generate_parser)
    generate_parser.set_defaults(func=cmd_generate)

    # AST command
    ast_parser = subparsers.add_parser(
        "ast",
        help="Print the parsed AST as JSON"
    )
    ast_parser.add_argument("xsd", help="Schema file")
    _add_grammar_options(ast_parser)
    ast_parser.set_defaults(func=cmd_ast)

    # Alias command
    alias_parser = subparsers.add_parser(
        "alias",
        help="Expand a pattern facet into a literal union"
    )
    alias_parser.add_argument("pattern", help="Pattern facet value")
    alias_parser.add_argument("--type", default="string", help="Declared scalar type (default: string)")
    alias_parser.add_argument(
        "--max-length",
        type=int,
        default=MAX_LENGTH,
        help=f"Longest literal produced (default: {MAX_LENGTH})"
    )
    alias_parser.set_defaults(func=cmd_alias)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, 'func'):
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))


if __name__ == "__main__":
    sys.exit(main())
