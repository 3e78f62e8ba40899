"""
Schema parsing - Turn raw SDL text into type declarations.

Dgraph schemas are GraphQL SDL with vendor directives (@search, @id,
@hasInverse, @custom, ...) and vendor scalars (DateTime, Int64, Point, ...).
Before handing the text to graphql-core the text is normalized:

- Directive usages are blanked out (same length, newlines kept, so syntax
  error positions still point into the original text) and recorded per type.
- Vendor scalars that are referenced but never declared get a `scalar`
  declaration appended.

Only genuinely malformed SDL (unbalanced braces, illegal tokens) raises
ParseError.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from graphql import GraphQLSyntaxError, parse
from graphql.language import (
    EnumTypeDefinitionNode,
    EnumTypeExtensionNode,
    InputObjectTypeDefinitionNode,
    InputObjectTypeExtensionNode,
    InterfaceTypeDefinitionNode,
    InterfaceTypeExtensionNode,
    ListTypeNode,
    NamedTypeNode,
    NonNullTypeNode,
    ObjectTypeDefinitionNode,
    ObjectTypeExtensionNode,
    ScalarTypeDefinitionNode,
    ScalarTypeExtensionNode,
    UnionTypeDefinitionNode,
    UnionTypeExtensionNode,
)

from .models import FieldDef, TypeKind

logger = logging.getLogger(__name__)


# Scalars Dgraph provides without a declaration in the schema text
VENDOR_SCALARS = (
    "DateTime",
    "Int64",
    "Point",
    "PolygonCoordinate",
    "Polygon",
    "MultiPolygon",
    "Upload",
)

NAME_PATTERN = r"[_A-Za-z][_0-9A-Za-z]*"

_DEFINITION_RE = re.compile(
    rf"\b(?P<extend>extend\s+)?(?P<keyword>type|interface|input|enum|union|scalar)\s+(?P<name>{NAME_PATTERN})"
    rf"|\b(?P<other>directive|schema)\b"
)
_DIRECTIVE_RE = re.compile(rf"@(?P<name>{NAME_PATTERN})")
_DIRECTIVE_DEFINITION_RE = re.compile(r"\bdirective\s*(?=@)")
_NAMED_REFERENCE_RE = re.compile(rf"\b{NAME_PATTERN}\b")

_DEFINITION_KINDS = {
    ObjectTypeDefinitionNode: TypeKind.OBJECT,
    ObjectTypeExtensionNode: TypeKind.OBJECT,
    InterfaceTypeDefinitionNode: TypeKind.INTERFACE,
    InterfaceTypeExtensionNode: TypeKind.INTERFACE,
    InputObjectTypeDefinitionNode: TypeKind.INPUT,
    InputObjectTypeExtensionNode: TypeKind.INPUT,
    EnumTypeDefinitionNode: TypeKind.ENUM,
    EnumTypeExtensionNode: TypeKind.ENUM,
    UnionTypeDefinitionNode: TypeKind.UNION,
    UnionTypeExtensionNode: TypeKind.UNION,
    ScalarTypeDefinitionNode: TypeKind.SCALAR,
    ScalarTypeExtensionNode: TypeKind.SCALAR,
}

_EXTENSION_NODES = (
    ObjectTypeExtensionNode,
    InterfaceTypeExtensionNode,
    InputObjectTypeExtensionNode,
    EnumTypeExtensionNode,
    UnionTypeExtensionNode,
    ScalarTypeExtensionNode,
)


class ParseError(Exception):
    """Schema text is not valid SDL even after normalization."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass
class TypeDeclaration:
    """A single named type declaration found in the schema text."""
    name: str
    kind: TypeKind
    fields: list[FieldDef] = field(default_factory=list)
    possible_types: Optional[list[str]] = None
    enum_values: Optional[list[str]] = None
    interfaces: list[str] = field(default_factory=list)
    directives: list[str] = field(default_factory=list)
    description: str = ""
    line: int = 1


@dataclass
class ParsedSchema:
    """Result of parsing: declarations in source order plus normalization info."""
    types: dict[str, TypeDeclaration] = field(default_factory=dict)
    injected_scalars: set[str] = field(default_factory=set)
    source: str = ""

    @property
    def type_names(self) -> list[str]:
        return list(self.types)


@dataclass
class _Span:
    name: Optional[str]  # None for `directive` / `schema` definitions
    start: int
    end: int


# --- Text scanning helpers ---

def mask_text(text: str) -> str:
    """
    Blank out comments and string contents, keeping length and newlines.

    Scanning the masked text means an `@` or a brace inside a description
    or a comment is never mistaken for syntax.
    """
    out = list(text)
    i = 0
    n = len(text)

    def blank(start: int, end: int):
        for k in range(start, min(end, n)):
            if out[k] != "\n":
                out[k] = " "

    while i < n:
        ch = text[i]
        if ch == "#":
            end = text.find("\n", i)
            end = n if end == -1 else end
            blank(i, end)
            i = end
        elif text.startswith('"""', i):
            j = i + 3
            while j < n:
                if text.startswith('\\"""', j):
                    j += 4
                elif text.startswith('"""', j):
                    break
                else:
                    j += 1
            end = min(j + 3, n)
            blank(i, end)
            i = end
        elif ch == '"':
            j = i + 1
            while j < n and text[j] not in '"\n':
                j += 2 if text[j] == "\\" else 1
            end = min(j + 1, n)
            blank(i, end)
            i = end
        else:
            i += 1
    return "".join(out)


def _find_closing(masked: str, start: int, open_ch: str, close_ch: str) -> int:
    """Index of the bracket closing the one at `start`, or -1 if unbalanced."""
    depth = 0
    for i in range(start, len(masked)):
        if masked[i] == open_ch:
            depth += 1
        elif masked[i] == close_ch:
            depth -= 1
            if depth == 0:
                return i
    return -1


def _brace_depths(masked: str) -> list[int]:
    depths = []
    depth = 0
    for ch in masked:
        depths.append(depth)
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth = max(0, depth - 1)
    return depths


def _find_body(masked: str, start: int, end: int) -> int:
    """First `{` outside parentheses, skipping braces in directive arguments."""
    parens = 0
    for i in range(start, end):
        ch = masked[i]
        if ch == "(":
            parens += 1
        elif ch == ")":
            parens = max(0, parens - 1)
        elif ch == "{" and parens == 0:
            return i
    return -1


def _declaration_spans(masked: str) -> list[_Span]:
    """Locate every top-level definition and the text range it covers."""
    depths = _brace_depths(masked)
    starts = [
        m for m in _DEFINITION_RE.finditer(masked)
        if depths[m.start()] == 0
    ]

    spans = []
    for i, match in enumerate(starts):
        next_start = starts[i + 1].start() if i + 1 < len(starts) else len(masked)
        end = next_start
        brace = _find_body(masked, match.end(), next_start)
        if brace != -1:
            close = _find_closing(masked, brace, "{", "}")
            if close != -1:
                end = close + 1
        spans.append(_Span(name=match.group("name"), start=match.start(), end=end))
    return spans


def _defined_directive_starts(masked: str) -> set[int]:
    """Offsets of the `@name` introduced by top-level `directive` definitions."""
    depths = _brace_depths(masked)
    return {
        match.end()
        for match in _DIRECTIVE_DEFINITION_RE.finditer(masked)
        if depths[match.start()] == 0
    }


def _directive_tokens(masked: str) -> list[tuple[int, int]]:
    """(start, end) of every directive usage, skipping directive definitions."""
    defined = _defined_directive_starts(masked)
    tokens = []
    for match in _DIRECTIVE_RE.finditer(masked):
        start = match.start()
        if start in defined:
            continue
        end = match.end()
        look = end
        while look < len(masked) and masked[look] in " \t\r\n":
            look += 1
        if look < len(masked) and masked[look] == "(":
            close = _find_closing(masked, look, "(", ")")
            if close == -1:
                # Leave it in place so the parser reports the real error
                continue
            end = close + 1
        tokens.append((start, end))
    return tokens


def _compact(token: str) -> str:
    return " ".join(token.split())


def extract_directives(type_name: str, raw_text: str) -> list[str]:
    """
    Return the directive usages written inside a type's declaration.

    Includes directives on the type itself and on its fields, in source
    order. Extensions of the type (`extend type X`) are scanned as well.
    """
    masked = mask_text(raw_text)
    spans = [s for s in _declaration_spans(masked) if s.name == type_name]
    if not spans:
        return []

    directives = []
    for start, end in _directive_tokens(masked):
        if any(s.start <= start < s.end for s in spans):
            directives.append(_compact(raw_text[start:end]))
    return directives


def normalize_schema(text: str) -> tuple[str, dict[str, list[str]], set[str]]:
    """
    Prepare raw schema text for a standard SDL parser.

    Returns:
        (normalized text, directives per type name, injected scalar names)
    """
    masked = mask_text(text)
    spans = [s for s in _declaration_spans(masked) if s.name]
    tokens = _directive_tokens(masked)

    directives: dict[str, list[str]] = {}
    chars = list(text)
    for start, end in tokens:
        owner = next((s.name for s in spans if s.start <= start < s.end), None)
        if owner is not None:
            directives.setdefault(owner, []).append(_compact(text[start:end]))
        for k in range(start, end):
            if chars[k] != "\n":
                chars[k] = " "
    normalized = "".join(chars)

    declared = {s.name for s in spans}
    referenced = set(_NAMED_REFERENCE_RE.findall(mask_text(normalized)))
    injected = {
        name for name in VENDOR_SCALARS
        if name in referenced and name not in declared
    }
    if injected:
        normalized += "\n" + "\n".join(f"scalar {name}" for name in sorted(injected)) + "\n"

    return normalized, directives, injected


# --- AST helpers ---

def format_type_string(type_node) -> str:
    """Render a type reference back to SDL, e.g. `[Post!]!`."""
    if isinstance(type_node, NamedTypeNode):
        return type_node.name.value
    if isinstance(type_node, ListTypeNode):
        return f"[{format_type_string(type_node.type)}]"
    if isinstance(type_node, NonNullTypeNode):
        return f"{format_type_string(type_node.type)}!"
    return "Unknown"


def _description(node) -> str:
    description = getattr(node, "description", None)
    return description.value if description is not None else ""


def _line(node) -> int:
    if node.loc is None:
        return 1
    return node.loc.start_token.line


def _field_defs(node) -> list[FieldDef]:
    return [
        FieldDef(
            name=f.name.value,
            type_string=format_type_string(f.type),
            description=_description(f),
        )
        for f in (getattr(node, "fields", None) or ())
    ]


def _declaration_from_node(node, kind: TypeKind) -> TypeDeclaration:
    declaration = TypeDeclaration(
        name=node.name.value,
        kind=kind,
        fields=_field_defs(node),
        interfaces=[i.name.value for i in (getattr(node, "interfaces", None) or ())],
        description=_description(node),
        line=_line(node),
    )
    if kind == TypeKind.UNION:
        declaration.possible_types = [t.name.value for t in (node.types or ())]
    elif kind == TypeKind.ENUM:
        declaration.enum_values = [v.name.value for v in (node.values or ())]
    return declaration


def _merge_extension(base: TypeDeclaration, extension: TypeDeclaration):
    """Fold an `extend ...` block into the declaration it extends."""
    known = {f.name for f in base.fields}
    base.fields.extend(f for f in extension.fields if f.name not in known)
    for interface in extension.interfaces:
        if interface not in base.interfaces:
            base.interfaces.append(interface)
    if extension.possible_types:
        base.possible_types = (base.possible_types or []) + [
            t for t in extension.possible_types if t not in (base.possible_types or [])
        ]
    if extension.enum_values:
        base.enum_values = (base.enum_values or []) + [
            v for v in extension.enum_values if v not in (base.enum_values or [])
        ]


def parse_schema(text: str) -> ParsedSchema:
    """
    Parse SDL text into type declarations.

    Args:
        text: Raw schema text, possibly with vendor directives/scalars

    Returns:
        ParsedSchema with declarations in source order

    Raises:
        ParseError: if the text is not valid SDL after normalization
    """
    if not text or not text.strip():
        return ParsedSchema(source=text or "")

    normalized, directives, injected = normalize_schema(text)

    try:
        document = parse(normalized)
    except GraphQLSyntaxError as e:
        message = e.message
        if e.locations:
            location = e.locations[0]
            message = f"{message} (line {location.line}, column {location.column})"
        raise ParseError(message) from e

    types: dict[str, TypeDeclaration] = {}
    extensions: list[tuple[TypeDeclaration, TypeKind]] = []

    for definition in document.definitions:
        kind = _DEFINITION_KINDS.get(type(definition))
        if kind is None:
            # schema / directive definitions and executable definitions
            continue

        declaration = _declaration_from_node(definition, kind)
        if isinstance(definition, _EXTENSION_NODES):
            extensions.append((declaration, kind))
            continue

        if declaration.name in types:
            logger.warning("Type %s declared more than once, keeping the last declaration", declaration.name)
        declaration.directives = list(directives.get(declaration.name, []))
        types[declaration.name] = declaration

    for extension, kind in extensions:
        base = types.get(extension.name)
        if base is None:
            logger.debug("Extension of undeclared type %s treated as a declaration", extension.name)
            extension.directives = list(directives.get(extension.name, []))
            types[extension.name] = extension
        else:
            _merge_extension(base, extension)

    logger.debug("Parsed %d type declarations (%d vendor scalars injected)", len(types), len(injected))
    return ParsedSchema(types=types, injected_scalars=injected, source=text)
