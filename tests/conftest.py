"""Shared fixtures: schema texts used across the unit tests."""

import pytest

from schemagraph import LayoutParams


CHAIN_SCHEMA = """
type A { b: B }
type B { c: C }
type C { d: D }
type D { value: Int }
type E { value: String }
"""

MUTUAL_SCHEMA = """
type A { b: B }
type B { a: A }
"""

BLOG_SCHEMA = """
interface Node { id: ID! }

type User implements Node {
  id: ID!
  posts: [Post!]!
  role: Role
  profile: Profile
}

type Post implements Node {
  id: ID!
  author: User!
  tags: [String]
}

enum Role { ADMIN MEMBER }

input PostFilter { author: UserFilter title: String }
input UserFilter { name: String }

union SearchResult = User | Post

scalar JSON

type Profile { data: JSON }
"""

DGRAPH_SCHEMA = '''
# Dgraph.Authorization {"VerificationKey":"secret","Header":"X-Auth"}

"""
A person. Mentions @search in the description, which is not a directive.
"""
type Person @dgraph(type: "Person") {
  id: ID!
  name: String! @search(by: [hash, term])
  friends: [Person] @hasInverse(field: friends)
  born: DateTime @search
  location: Point
  posts: [Post]   # @custom(http: {url: "ignored"})
}

type Post @auth(query: { rule: "{ $USER: { eq: \\"admin\\" } }" }) {
  id: ID!
  title: String! @search(by: [fulltext])
  score: Int64
  author: Person!
}
'''


@pytest.fixture
def chain_schema():
    return CHAIN_SCHEMA


@pytest.fixture
def mutual_schema():
    return MUTUAL_SCHEMA


@pytest.fixture
def blog_schema():
    return BLOG_SCHEMA


@pytest.fixture
def dgraph_schema():
    return DGRAPH_SCHEMA


@pytest.fixture
def fast_params():
    """Layout parameters that converge in a few dozen ticks."""
    return LayoutParams(alpha_decay=0.15)
