import pytest

from src.search.intent import QueryFilter, analyze_intent, detect_intents


def test_genre_request_maps_to_genre_category():
    analysis = analyze_intent("show me horror movies")

    assert analysis.primary.name == "discover_by_genre"
    assert analysis.filters == (QueryFilter("genre", "horror", "equals", 2.0),)
    assert analysis.filters[0].keys().categories == ("genre_horror",)
    assert analysis.sort_order == "popularity"
    assert analysis.boosts == {"genre_match": 2.0, "rating": 1.5}
    assert analysis.confidence == pytest.approx(0.9)


def test_scifi_is_normalized_to_science_fiction():
    analysis = analyze_intent("sci-fi films")

    assert analysis.filters[0].value == "science fiction"
    assert analysis.filters[0].keys().categories == ("genre_science_fiction",)


def test_quality_intent_adds_rating_and_year_filters():
    analysis = analyze_intent("best sci-fi movies from 1999")

    assert analysis.primary.name == "find_highly_rated"
    rating, year = analysis.filters
    assert rating == QueryFilter("rating", 7.5, "greater_than", 2.0)
    assert rating.keys().categories == ("rating_excellent", "rating_great")
    assert year == QueryFilter("year", 1999, "equals", 1.5)
    assert year.keys().categories == ("decade_1990s",)
    assert year.keys().terms == ("1999",)


def test_patterns_match_whole_words_only():
    names = [intent.name for intent in detect_intents("white christmas")]

    assert names == ["seasonal_content"]
    assert analyze_intent("white christmas").filters == (QueryFilter("seasonal", "christmas", "equals", 3.0),)


def test_supporting_intents_raise_confidence_and_become_alternatives():
    analysis = analyze_intent("show me funny christmas movies")

    assert analysis.primary.name == "seasonal_content"
    assert analysis.alternatives == ("discover_by_theme", "mood_based")
    assert analysis.confidence == pytest.approx(0.99)


def test_director_name_is_extracted():
    analysis = analyze_intent("batman movies directed by tim burton")

    assert analysis.primary.name == "find_by_director"
    assert analysis.filters == (QueryFilter("director", "tim burton", "contains", 2.5),)
    assert analysis.filters[0].keys().terms == ("tim burton",)


def test_hidden_gems_carry_constraints():
    analysis = analyze_intent("underrated horror")

    assert analysis.primary.name == "find_hidden_gems"
    assert analysis.constraints == {"max_popularity": 20.0, "min_rating": 7.0}
    popularity, rating = analysis.constraint_filters()
    assert popularity.keys().categories == ("popularity_known", "popularity_niche")
    assert rating.keys().categories == ("rating_excellent", "rating_great", "rating_good")


def test_mood_resolves_to_concepts():
    analysis = analyze_intent("something scary")

    assert analysis.primary.name == "mood_based"
    assert analysis.filters[0].keys().concepts == ("fear", "psychological_terror")


def test_plain_query_has_no_intent():
    analysis = analyze_intent("batman")

    assert analysis.primary is None
    assert analysis.filters == ()
    assert analysis.sort_order == "relevance"
    assert analysis.confidence == 0.0
    assert analysis.to_record()["intent"] is None


def test_threshold_rejects_weak_intents():
    analysis = analyze_intent("show me horror movies", threshold=0.95)

    assert analysis.primary is None
    assert [intent.name for intent in analysis.detected] == ["discover_by_genre"]
