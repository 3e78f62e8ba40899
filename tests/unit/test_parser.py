#!/usr/bin/env python3
"""Unit tests for schema text normalization and parsing."""

import pytest

from schemagraph import ParseError, TypeKind, extract_directives, parse_schema
from schemagraph.parser import mask_text, normalize_schema


@pytest.mark.unit
class TestParseSchema:
    """Tests for parse_schema on plain SDL."""

    def test_parses_every_declaration_kind(self, blog_schema):
        """Test that all six declaration kinds are recognized."""
        parsed = parse_schema(blog_schema)

        kinds = {name: decl.kind for name, decl in parsed.types.items()}
        assert kinds["Node"] == TypeKind.INTERFACE
        assert kinds["User"] == TypeKind.OBJECT
        assert kinds["Role"] == TypeKind.ENUM
        assert kinds["PostFilter"] == TypeKind.INPUT
        assert kinds["SearchResult"] == TypeKind.UNION
        assert kinds["JSON"] == TypeKind.SCALAR

    def test_declarations_keep_source_order(self, blog_schema):
        """Test that type names come back in the order they were written."""
        parsed = parse_schema(blog_schema)

        assert parsed.type_names[:3] == ["Node", "User", "Post"]

    def test_field_type_strings_keep_wrappers(self, blog_schema):
        """Test that list and non-null markers survive in type strings."""
        parsed = parse_schema(blog_schema)

        fields = {f.name: f.type_string for f in parsed.types["User"].fields}
        assert fields["posts"] == "[Post!]!"
        assert fields["id"] == "ID!"
        assert fields["role"] == "Role"

    def test_union_members_and_enum_values(self, blog_schema):
        """Test that union members and enum values are collected."""
        parsed = parse_schema(blog_schema)

        assert parsed.types["SearchResult"].possible_types == ["User", "Post"]
        assert parsed.types["Role"].enum_values == ["ADMIN", "MEMBER"]

    def test_interfaces_are_recorded(self, blog_schema):
        """Test that implemented interfaces are listed on the type."""
        parsed = parse_schema(blog_schema)

        assert parsed.types["User"].interfaces == ["Node"]

    def test_empty_text_gives_empty_schema(self):
        """Test that blank input parses to no declarations."""
        assert parse_schema("").types == {}
        assert parse_schema("   \n\t").types == {}

    def test_extension_merges_into_base_type(self):
        """Test that `extend type` adds fields to the declared type."""
        parsed = parse_schema("""
            type A { x: String }
            extend type A { b: B }
            type B { y: Int }
        """)

        assert [f.name for f in parsed.types["A"].fields] == ["x", "b"]
        assert len(parsed.types) == 2

    def test_duplicate_declaration_keeps_last(self):
        """Test that a repeated type name keeps the later declaration."""
        parsed = parse_schema("""
            type A { first: String }
            type A { second: String }
        """)

        assert [f.name for f in parsed.types["A"].fields] == ["second"]


@pytest.mark.unit
class TestParseErrors:
    """Tests for malformed schema text."""

    def test_unclosed_brace_raises(self):
        """Test that an unbalanced declaration is rejected."""
        with pytest.raises(ParseError):
            parse_schema("type Foo { bar: String")

    def test_error_message_has_position(self):
        """Test that the error message points at a line and column."""
        with pytest.raises(ParseError) as exc_info:
            parse_schema("type Foo {\n  bar: String\n  baz: [Int\n}")

        assert "line" in exc_info.value.message
        assert "column" in exc_info.value.message

    def test_illegal_token_raises(self):
        """Test that a stray symbol is a syntax error."""
        with pytest.raises(ParseError):
            parse_schema("type Foo { bar: String % }")


@pytest.mark.unit
class TestVendorDirectives:
    """Tests for schemas carrying vendor directives and scalars."""

    def test_type_directive_with_arguments_parses(self):
        """Test that a directive with arguments on a type does not break parsing."""
        parsed = parse_schema("type Foo @custom(x:1) { bar: String }")

        foo = parsed.types["Foo"]
        assert [f.name for f in foo.fields] == ["bar"]
        assert foo.directives == ["@custom(x:1)"]

    def test_field_directives_are_recorded_in_order(self, dgraph_schema):
        """Test that directives on the type and its fields are kept per type."""
        parsed = parse_schema(dgraph_schema)

        assert parsed.types["Person"].directives == [
            '@dgraph(type: "Person")',
            "@search(by: [hash, term])",
            "@hasInverse(field: friends)",
            "@search",
        ]

    def test_braces_inside_directive_arguments(self, dgraph_schema):
        """Test that an object argument on a type directive is not taken for the body."""
        parsed = parse_schema(dgraph_schema)

        post = parsed.types["Post"]
        assert [d.split("(")[0] for d in post.directives] == ["@auth", "@search"]
        assert [f.name for f in post.fields] == ["id", "title", "score", "author"]

    def test_directives_in_comments_and_descriptions_ignored(self, dgraph_schema):
        """Test that `@` inside comments and descriptions is not a directive."""
        parsed = parse_schema(dgraph_schema)

        person = parsed.types["Person"]
        assert not any(d.startswith("@custom") for d in person.directives)
        assert "@search in the description" in person.description

    def test_vendor_scalars_are_injected(self, dgraph_schema):
        """Test that referenced but undeclared vendor scalars are declared."""
        parsed = parse_schema(dgraph_schema)

        assert parsed.injected_scalars == {"DateTime", "Point", "Int64"}
        assert parsed.types["DateTime"].kind == TypeKind.SCALAR

    def test_declared_vendor_scalar_not_injected(self):
        """Test that an explicit scalar declaration wins over injection."""
        parsed = parse_schema("scalar DateTime\ntype Event { at: DateTime }")

        assert parsed.injected_scalars == set()

    def test_directive_definitions_are_kept(self):
        """Test that `directive @x` definitions are valid input, not usages."""
        parsed = parse_schema(
            "directive @custom(x: Int) on OBJECT\n"
            "type Foo @custom(x: 1) { bar: String }"
        )

        assert parsed.types["Foo"].directives == ["@custom(x: 1)"]

    def test_member_named_directive_is_not_a_definition(self):
        """Test that an enum value called `directive` does not hide the usage after it."""
        parsed = parse_schema("enum Kind { directive @deprecated other }")

        kind = parsed.types["Kind"]
        assert kind.directives == ["@deprecated"]
        assert kind.enum_values == ["directive", "other"]

    def test_field_named_directive(self):
        """Test that a field called `directive` keeps its own directive."""
        parsed = parse_schema("type Rule { directive: String @search }")

        assert parsed.types["Rule"].directives == ["@search"]


@pytest.mark.unit
class TestNormalization:
    """Tests for the text helpers behind normalization."""

    def test_normalized_text_keeps_length_and_lines(self, dgraph_schema):
        """Test that blanking keeps positions of the original text."""
        normalized, _, injected = normalize_schema(dgraph_schema)

        original_part = normalized[:len(dgraph_schema)]
        assert original_part.count("\n") == dgraph_schema.count("\n")
        assert "@" not in mask_text(original_part)
        assert injected

    def test_mask_text_blanks_comments_and_strings(self):
        """Test that comments and string contents become spaces."""
        text = 'type A { a: String } # @x\n"@y"'
        masked = mask_text(text)

        assert len(masked) == len(text)
        assert "@" not in masked
        assert masked.startswith("type A { a: String }")

    def test_extract_directives_for_one_type(self, dgraph_schema):
        """Test that directive extraction is scoped to a single type."""
        directives = extract_directives("Post", dgraph_schema)

        assert directives[-1] == "@search(by: [fulltext])"
        assert len(directives) == 2

    def test_extract_directives_unknown_type(self, dgraph_schema):
        """Test that an unknown type has no directives."""
        assert extract_directives("Missing", dgraph_schema) == []
