"""Unit tests for YAML front matter handling."""

from cangjie_docs_mcp.utils.front_matter import front_matter_keywords, parse_front_matter


def test_parse_front_matter_splits_metadata_and_body():
    content = "---\ntitle: 泛型\ntags: [a, b]\n---\n# 泛型\n\nbody\n"

    metadata, body = parse_front_matter(content)

    assert metadata == {"title": "泛型", "tags": ["a", "b"]}
    assert body == "# 泛型\n\nbody\n"


def test_content_without_front_matter_is_unchanged():
    content = "# Title\n\n---\nnot front matter\n---\n"

    assert parse_front_matter(content) == ({}, content)


def test_invalid_yaml_is_ignored():
    content = "---\ntitle: [unclosed\n---\nbody"

    assert parse_front_matter(content) == ({}, content)


def test_non_mapping_front_matter_is_ignored():
    content = "---\n- just\n- a list\n---\nbody"

    assert parse_front_matter(content) == ({}, content)


def test_front_matter_keywords_accepts_list_or_string():
    assert front_matter_keywords({"keywords": ["Generic", " 泛型 ", ""]}) == ["generic", "泛型"]
    assert front_matter_keywords({"keywords": "HashMap, Map ,,"}) == ["hashmap", "map"]
    assert front_matter_keywords({"keywords": 42}) == []
    assert front_matter_keywords({}) == []
