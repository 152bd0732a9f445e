import copy

from fakes import RICH_DOCUMENT

from branddna_api.services.completion import SCORED_SECTIONS, completion_score, status_for_score


def test_empty_document_scores_zero_and_needs_review() -> None:
    score = completion_score({})
    assert score == 0
    assert status_for_score(score) == "needs_review"


def test_single_identity_field_scores_64() -> None:
    # 40 * 1/11 + 60 * 1/1 = 63.6
    score = completion_score({"identity": {"official_name": "Acme"}})
    assert score == 64
    assert status_for_score(score) == "needs_review"


def test_rich_document_is_complete() -> None:
    # 11/11 sections, 14 of 15 fields filled: 40 + 56
    score = completion_score(RICH_DOCUMENT)
    assert score == 96
    assert status_for_score(score) == "complete"


def test_every_section_filled_scores_100() -> None:
    document = {name: {"field": "value"} for name in SCORED_SECTIONS}
    assert completion_score(document) == 100


def test_filled_predicate_counts_numbers_and_booleans() -> None:
    document = {"identity": {"a": "", "b": None, "c": [], "d": {}, "e": 0, "f": False}}
    # 40 * 1/11 + 60 * 2/6 = 23.6
    assert completion_score(document) == 24


def test_list_section_is_keyed_by_index() -> None:
    document = {"products": [{"name": "Anvil"}, {}]}
    # 40 * 1/11 + 60 * 1/2 = 33.6
    assert completion_score(document) == 34


def test_unscored_and_non_container_sections_are_ignored() -> None:
    assert completion_score({"interaction_history": {"favorite_post_styles": ["carousel"]}}) == 0
    assert completion_score({"identity": "Acme", "voice": None}) == 0
    assert completion_score({"unknown": {"a": "b"}}) == 0


def test_score_is_deterministic_and_pure() -> None:
    document = copy.deepcopy(RICH_DOCUMENT)
    snapshot = copy.deepcopy(document)
    assert completion_score(document) == completion_score(copy.deepcopy(document))
    assert document == snapshot
    # An empty section and a missing section contribute the same.
    assert completion_score({"voice": {}}) == completion_score({})


def test_threshold_boundary() -> None:
    assert status_for_score(70) == "complete"
    assert status_for_score(69) == "needs_review"
    assert status_for_score(50, threshold=50) == "complete"
