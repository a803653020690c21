"""Tests for DocumentStore.similarity_search."""

import pytest

from docstore import Document, DocumentStore, SearchRequest, StoreConfig
from docstore.exceptions import FilterParseError, InvalidRequestError, UnfilterableFieldError
from docstore.vectorstore.memory import MemoryVectorStore

WORLD = "The World is Big and Salvation Lurks Around the Corner"


@pytest.fixture
def countries(store):
    bg = Document(WORLD, {"country": "BG", "year": 2020})
    nl = Document(WORLD, {"country": "NL"})
    bg2 = Document(WORLD, {"country": "BG", "year": 2023})
    store.add([bg, nl, bg2])
    return bg, nl, bg2


def _search(store, expression=None, top_k=5):
    request = SearchRequest("The World").with_top_k(top_k).with_similarity_threshold_all()
    return store.similarity_search(request.with_filter_expression(expression))


def test_search_without_filter_returns_all(store, countries):
    assert len(store.similarity_search(SearchRequest("The World", top_k=5))) == 3


def test_filter_single_country(store, countries):
    _, nl, _ = countries
    results = _search(store, "country == 'NL'")
    assert [r.id for r in results] == [nl.id]


def test_filter_two_matches(store, countries):
    bg, _, bg2 = countries
    results = _search(store, "country == 'BG'")
    assert {r.id for r in results} == {bg.id, bg2.id}


def test_filter_conjunction(store, countries):
    bg, _, _ = countries
    results = _search(store, "country == 'BG' && year == 2020")
    assert [r.id for r in results] == [bg.id]


def test_filter_negated_conjunction(store, countries):
    _, nl, bg2 = countries
    results = _search(store, "NOT(country == 'BG' && year == 2020)")
    assert {r.id for r in results} == {nl.id, bg2.id}


def test_filter_in_and_range(store, countries):
    bg, nl, bg2 = countries
    assert {r.id for r in _search(store, "country IN ('NL', 'DE')")} == {nl.id}
    assert {r.id for r in _search(store, "year > 2020 || country != 'BG'")} == {nl.id, bg2.id}


def test_top_k_caps_results(store, countries):
    assert len(_search(store, top_k=2)) == 2


def test_equal_scores_keep_a_deterministic_order(store, countries):
    first = [r.id for r in _search(store)]
    for _ in range(3):
        assert [r.id for r in _search(store)] == first


def test_result_carries_score_and_distance(store):
    store.add([Document("spring ai framework", {"meta1": "meta1"})])
    result = store.similarity_search("spring")[0]
    assert 0.0 <= result.score <= 1.0
    assert result.distance == pytest.approx(1.0 - result.score)
    assert result.metadata["distance"] == pytest.approx(result.distance)
    assert result.metadata["meta1"] == "meta1"
    assert "distance" not in result.document.metadata


def test_threshold_selects_top_document(store):
    spring = Document("Spring AI rocks, the Spring AI framework", {"meta1": "meta1"})
    store.add([
        spring,
        Document("Time shelter"),
        Document("Great Depression great depression", {"meta2": "meta2"}),
    ])
    full = store.similarity_search(SearchRequest("Spring", top_k=5).with_similarity_threshold_all())
    assert len(full) == 3
    scores = [r.score for r in full]
    assert scores == sorted(scores, reverse=True)

    threshold = (scores[0] + scores[1]) / 2
    results = store.similarity_search(
        SearchRequest("Spring", top_k=5).with_similarity_threshold(threshold)
    )
    assert len(results) == 1
    assert results[0].id == spring.id
    assert results[0].score >= threshold
    assert {"meta1", "distance"} <= set(results[0].metadata)


def test_threshold_is_monotonic(store):
    store.add([
        Document("spring framework"),
        Document("spring time"),
        Document("hello world"),
        Document("great depression"),
    ])
    counts = [
        len(store.similarity_search(SearchRequest("spring", top_k=10, similarity_threshold=t)))
        for t in (0.0, 0.25, 0.5, 0.6, 0.75, 0.9, 1.0)
    ]
    assert counts == sorted(counts, reverse=True)
    assert counts[0] == 4


def test_string_request_shorthand(store, countries):
    assert len(store.similarity_search("The World")) == 3


@pytest.mark.parametrize(
    "request_",
    [
        SearchRequest("q", top_k=0),
        SearchRequest("q", top_k=-3),
        SearchRequest("q", top_k=True),
        SearchRequest("q", similarity_threshold=1.5),
        SearchRequest("q", similarity_threshold=-0.1),
        SearchRequest(None),
    ],
)
def test_invalid_requests(store, request_):
    with pytest.raises(InvalidRequestError):
        store.similarity_search(request_)


def test_bad_filter_fails_before_embedding(store, embedder):
    with pytest.raises(FilterParseError):
        store.similarity_search(SearchRequest("q", filter_expression="country == "))
    with pytest.raises(UnfilterableFieldError):
        store.similarity_search(SearchRequest("q", filter_expression="color == 'red'"))
    assert embedder.query_calls == 0


def test_blank_filter_means_no_filter(store, countries):
    assert len(_search(store, "   ")) == 3


def test_in_process_overfetch_is_tunable(embedder):
    docs = [Document("spring " * (5 - i), {"country": "BG"}) for i in range(4)]
    docs.append(Document("hello", {"country": "NL"}))

    def search(factor):
        config = StoreConfig(metadata_fields_to_filter={"country"}, overfetch_factor=factor)
        with DocumentStore(embedder, MemoryVectorStore(native_filters=False), config) as store:
            store.add(docs)
            return store.similarity_search(
                SearchRequest("spring", top_k=1, filter_expression="country == 'NL'")
            )

    # The NL document ranks last; a small candidate pool misses it.
    assert search(1) == []
    assert [r.content for r in search(5)] == ["hello"]


def test_in_process_fallback_logs_warning(embedder, caplog):
    config = StoreConfig(metadata_fields_to_filter={"country"})
    with DocumentStore(embedder, MemoryVectorStore(native_filters=False), config) as store:
        store.add([Document("hello", {"country": "NL"})])
        request = SearchRequest("hello", filter_expression="country == 'NL'")
        with caplog.at_level("WARNING", logger="docstore.store"):
            assert len(store.similarity_search(request)) == 1
            assert store.delete_by_filter("country == 'NL'") == 1
    fallbacks = [r for r in caplog.records if "in-process" in r.getMessage()]
    assert [r.levelname for r in fallbacks] == ["WARNING", "WARNING"]


def test_native_filter_does_not_warn(embedder, caplog):
    config = StoreConfig(metadata_fields_to_filter={"country"})
    with DocumentStore(embedder, MemoryVectorStore(), config) as store:
        store.add([Document("hello", {"country": "NL"})])
        with caplog.at_level("WARNING", logger="docstore.store"):
            store.similarity_search(SearchRequest("hello", filter_expression="country == 'NL'"))
    assert not [r for r in caplog.records if r.levelname == "WARNING"]
