import pytest

from branddna_api.errors import InvalidFieldPathError
from branddna_api.services.paths import (
    MISSING,
    FieldPath,
    get_value,
    is_filled,
    iter_leaf_paths,
    set_value,
    unset_value,
)


def test_parse_rejects_malformed_paths() -> None:
    for bad in ["", "a..b", ".a", "a."]:
        with pytest.raises(InvalidFieldPathError):
            FieldPath.parse(bad)
    assert str(FieldPath.parse("products.0.name")) == "products.0.name"
    assert FieldPath.parse("voice.tone").segments == ("voice", "tone")


def test_get_reads_nested_objects_and_list_indices() -> None:
    doc = {"products": [{"name": "Anvil"}], "identity": {"official_name": "Acme", "founded": None}}
    assert get_value(doc, "identity.official_name") == "Acme"
    assert get_value(doc, "products.0.name") == "Anvil"
    assert get_value(doc, "identity.founded") is None


def test_get_returns_missing_instead_of_raising() -> None:
    doc = {"identity": {"official_name": "Acme"}, "products": [{"name": "Anvil"}]}
    assert get_value(doc, "voice.tone") is MISSING
    assert get_value(doc, "identity.official_name.first") is MISSING
    assert get_value(doc, "products.3.name") is MISSING
    assert get_value(doc, "products.first") is MISSING


def test_set_creates_intermediate_objects() -> None:
    doc: dict = {}
    set_value(doc, "visual_identity.typography.font_families", ["Inter"])
    assert doc == {"visual_identity": {"typography": {"font_families": ["Inter"]}}}


def test_set_overwrites_scalar_intermediates() -> None:
    doc = {"identity": "Acme"}
    set_value(doc, "identity.official_name", "Acme Corp")
    assert doc == {"identity": {"official_name": "Acme Corp"}}

    doc = {"voice": {"examples": None}}
    set_value(doc, "voice.examples.micro_hook", "Hi")
    assert doc == {"voice": {"examples": {"micro_hook": "Hi"}}}


def test_set_indexes_and_appends_lists() -> None:
    doc = {"products": [{"name": "Anvil"}]}
    set_value(doc, "products.0.name", "Hammer")
    set_value(doc, "products.1", {"name": "Tongs"})
    assert doc == {"products": [{"name": "Hammer"}, {"name": "Tongs"}]}

    with pytest.raises(InvalidFieldPathError):
        set_value(doc, "products.5", {"name": "Gap"})


def test_set_replaces_list_when_segment_is_not_an_index() -> None:
    doc = {"seo": ["anvils"]}
    set_value(doc, "seo.top_keywords", ["anvils"])
    assert doc == {"seo": {"top_keywords": ["anvils"]}}


def test_unset_removes_leaf_only() -> None:
    doc = {"identity": {"official_name": "Acme", "tagline": "Tools"}}
    assert unset_value(doc, "identity.tagline") == "Tools"
    assert doc == {"identity": {"official_name": "Acme"}}
    assert unset_value(doc, "identity.missing") is MISSING
    assert unset_value(doc, "voice.tone") is MISSING


def test_is_filled_matches_completion_rules() -> None:
    for empty in ["", None, [], {}, MISSING]:
        assert not is_filled(empty)
    for filled in ["x", 0, False, ["a"], {"a": None}]:
        assert is_filled(filled)


def test_iter_leaf_paths_treats_lists_as_leaves() -> None:
    doc = {"identity": {"official_name": "Acme", "address": {"city": "Paris"}}, "voice": {"tone": ["bold"]}, "proof": {}}
    assert dict(iter_leaf_paths(doc)) == {
        "identity.official_name": "Acme",
        "identity.address.city": "Paris",
        "voice.tone": ["bold"],
        "proof": {},
    }
