"""XSD Typegen
===========

Toolkit and service layer turning **XML Schema** (XSD) documents into a typed
AST and TypeScript template classes.

Key capabilities
----------------
- Parse XSD into a tree of :class:`~xsd_typegen.models.ASTNode` objects with a
  small combinator grammar (terminals, ordered alternation, matchers and
  forward references).
- Expand bounded ``pattern`` facets into finite unions of string or numeric
  literals.
- Order classes so every base class precedes the classes extending it, with
  explicit inheritance cycle reporting.
- Emit TypeScript classes, enums and aliases plus ``index.ts`` and
  ``tsconfig.json`` for a schema file.
- In-process caching of parsed ASTs with TTL + file staleness detection and a
  FastAPI service for remote use.

Design principles
-----------------
1. **Rule precedence is data** - The grammar is an ordered list of labeled
    rules; the first rule accepting a top-level element decides its node.
2. **No match is not an error** - Parslets return ``None`` when they do not
    apply; only malformed input or a miswired grammar raises.
3. **Separation of concerns** - Grammar, pattern expansion, class ordering,
    emission, caching and API transport are isolated modules.

Minimal quick start
-------------------
>>> from xsd_typegen import parse_xsd_string
>>> ast = parse_xsd_string(open('orders.xsd').read())
>>> [child.name for child in ast.children][:5]

FastAPI application instance (for ASGI servers like uvicorn):
>>> from xsd_typegen.app import app  # noqa: F401

Public surface
--------------
Only a curated subset is exported at the package level to keep the import
surface stable; advanced modules can be imported explicitly.
"""

__version__ = "0.1.0"

from .cache import get_cached_grammar
from .class_generator import ClassGenerator
from .generator import generate_template_classes_from_xsd
from .hierarchy import sort_classes_by_hierarchy
from .models import ASTNode
from .regexp2alias import regexp_pattern2type_alias
from .xsd_grammar import GrammarConfig, XsdGrammar, parse_xsd, parse_xsd_string

__all__ = [
    "ASTNode",
    "ClassGenerator",
    "GrammarConfig",
    "XsdGrammar",
    "generate_template_classes_from_xsd",
    "get_cached_grammar",
    "parse_xsd",
    "parse_xsd_string",
    "regexp_pattern2type_alias",
    "sort_classes_by_hierarchy",
]
