"""FastAPI application exposing the XSD grammar and TypeScript generator.

Quick start (run the server)::

    uvicorn xsd_typegen.run_server:app --reload

Core endpoints (REST):

    GET  /health              Basic health probe
    GET  /config/grammar      Active grammar configuration
    POST /ast                 Parse XSD text into an AST
    POST /generate            Generate TypeScript source from XSD text
    POST /regexp/alias        Expand a pattern facet into a literal union

Example: parse a schema::

    curl -X POST http://localhost:8000/ast \
         -H "Content-Type: application/json" \
         -d '{"xsd": "<xs:schema xmlns:xs=\\"http://www.w3.org/2001/XMLSchema\\">...</xs:schema>"}'

Example: expand a pattern::

    curl -X POST http://localhost:8000/regexp/alias \
         -H "Content-Type: application/json" \
         -d '{"pattern": "A|B|C"}'
    # {"alias": "\\"A\\"|\\"B\\"|\\"C\\""}

Configuration:
    * ``XSD_TYPEGEN_CONFIG`` holds comma separated ``key=value`` pairs for
      :class:`~xsd_typegen.xsd_grammar.GrammarConfig`
      (``schema_name=orders,regexp_max_length=20``).

Error handling:
    * Malformed schemas answer 400, inheritance cycles 422.
    * 404 and 500 are wrapped with JSON payloads for more consistent client UX.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import replace
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .cache import CachedGrammar, get_cached_grammar
from .class_generator import CLASS_PREFIX, ClassGenerator, GeneratorOptions
from .hierarchy import InheritanceCycleError, sort_classes_by_hierarchy
from .regexp2alias import MAX_LENGTH, regexp_pattern2type_alias
from .xsd_grammar import GrammarConfig, InvalidSchemaError, class_nodes

logger = logging.getLogger(__name__)

CONFIG_ENV = "XSD_TYPEGEN_CONFIG"


def _get_config_key() -> Optional[str]:
    """Get the grammar configuration string from the environment."""
    return os.getenv(CONFIG_ENV) or None


app = FastAPI(
    title="XSD Typegen API",
    version=__version__,
    description="Derive typed ASTs and TypeScript classes from XML Schema definitions",
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.middleware("http")
async def time_requests(request: Request, call_next):
    """Middleware adding timing and version headers."""
    start_time = time.time()
    response = await call_next(request)
    response_time = time.time() - start_time

    response.headers["X-Response-Time"] = f"{response_time:.3f}s"
    response.headers["X-API-Version"] = __version__
    logger.debug("%s %s -> %s in %.3fs", request.method, request.url.path, response.status_code, response_time)
    return response


class AstRequest(BaseModel):
    """Request model for the AST endpoint."""

    xsd: str = Field(..., description="XSD document text")
    schema_name: Optional[str] = Field(None, description="Name of the schema node")
    default_namespace: Optional[str] = Field(
        None, description="Namespace placed in front of unqualified type references"
    )


class AstResponse(BaseModel):
    """Response model for the AST endpoint."""

    node: Dict[str, Any] = Field(..., description="The parsed schema node")
    classes: List[str] = Field(
        default_factory=list, description="Class names, bases before derived classes"
    )


class GenerateRequest(BaseModel):
    """Request model for the generation endpoint."""

    xsd: str = Field(..., description="XSD document text")
    dependencies: Dict[str, str] = Field(
        default_factory=dict, description="Namespace alias to module path"
    )
    class_prefix: str = Field(CLASS_PREFIX, description="Prefix of the @class discriminator")
    schema_name: Optional[str] = Field(None, description="Name of the schema node")


class GenerateResponse(BaseModel):
    """Response model for the generation endpoint."""

    source: str = Field(..., description="Generated TypeScript source")
    classes: List[str] = Field(default_factory=list, description="Emitted class names")


class AliasRequest(BaseModel):
    """Request model for pattern expansion."""

    pattern: str = Field(..., description="XSD pattern facet value")
    type: str = Field("string", description="Declared scalar type")
    max_length: int = Field(MAX_LENGTH, ge=1, le=1000, description="Longest literal produced")


class AliasResponse(BaseModel):
    alias: str = Field(..., description="Literal union or the declared type")


class GrammarConfigResponse(BaseModel):
    """Response model for grammar configuration."""

    schema_name: str = Field(..., description="Name of the schema node")
    default_namespace: Optional[str] = Field(None, description="Default namespace")
    regexp_max_length: int = Field(..., description="Longest literal produced from patterns")


def get_grammar() -> CachedGrammar:
    return get_cached_grammar(_get_config_key())


def _override(config: GrammarConfig, **changes: Optional[str]) -> GrammarConfig:
    return replace(config, **{key: value for key, value in changes.items() if value is not None})


@app.get("/health")
def health() -> Dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/config/grammar")
def get_grammar_config(grammar: CachedGrammar = Depends(get_grammar)) -> GrammarConfigResponse:
    """Get current grammar configuration."""
    return GrammarConfigResponse(**grammar.config.to_dict())


@app.post("/ast")
def parse_ast(request: AstRequest, grammar: CachedGrammar = Depends(get_grammar)) -> AstResponse:
    """Parse XSD text and return the AST plus the class order.

    Example::

        curl -X POST http://localhost:8000/ast -H "Content-Type: application/json" \
             -d '{"xsd": "...", "schema_name": "orders"}'
    """
    config = _override(
        grammar.config,
        schema_name=request.schema_name,
        default_namespace=request.default_namespace,
    )
    try:
        ast = grammar.parse_xsd_string(request.xsd, config)
        ordered = sort_classes_by_hierarchy(class_nodes(ast))
    except InvalidSchemaError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except InheritanceCycleError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return AstResponse(node=ast.to_dict(), classes=[node.name for node in ordered])


@app.post("/generate")
def generate(request: GenerateRequest, grammar: CachedGrammar = Depends(get_grammar)) -> GenerateResponse:
    """Generate TypeScript classes for XSD text."""
    config = _override(grammar.config, schema_name=request.schema_name)
    generator = ClassGenerator(
        GeneratorOptions(
            dependencies=request.dependencies,
            class_prefix=request.class_prefix,
            schema_name=config.schema_name,
            default_namespace=config.default_namespace,
            regexp_max_length=config.regexp_max_length,
        )
    )
    try:
        source = generator.generate(grammar.parse_xsd_string(request.xsd, config))
    except InvalidSchemaError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except InheritanceCycleError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return GenerateResponse(source=source, classes=sorted(generator.types))


@app.post("/regexp/alias")
def regexp_alias(request: AliasRequest) -> AliasResponse:
    """Expand a pattern facet into a literal union type expression."""
    return AliasResponse(alias=regexp_pattern2type_alias(request.pattern, request.type, request.max_length))


@app.exception_handler(404)
async def not_found_handler(request, exc):
    """Custom 404 handler with more helpful error messages."""
    return JSONResponse(
        status_code=404,
        content={
            "error": "Not Found",
            "detail": (
                str(exc.detail)
                if hasattr(exc, "detail")
                else "The requested resource was not found"
            ),
            "path": str(request.url.path),
        },
    )


@app.exception_handler(500)
async def internal_error_handler(request, exc):
    """Custom 500 handler for internal errors."""
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "detail": "An unexpected error occurred processing your request",
        },
    )
