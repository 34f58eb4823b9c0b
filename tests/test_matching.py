from court_finder.matching import find_best_match, is_subsequence, match_score, normalise_name, suggest
from court_finder.models import Venue

VENUES = [
    Venue(id="DAAN_FOREST", name="大安森林公園網球場"),
    Venue(id="TTC", name="臺北網球中心"),
    Venue(id="YF", name="迎風河濱公園網球場"),
]


def test_normalise_name_strips_spacing_and_punctuation():
    assert normalise_name(" 臺北 網球（中心） ") == "臺北網球中心"
    assert normalise_name("Court-1 / East") == "court1east"


def test_match_score_orders_exact_substring_subsequence():
    assert match_score("abc", "abc") == 1.0
    assert 0.0 < match_score("abcdef", "bcd") <= 0.95
    assert 0.0 < match_score("abcdef", "ace") <= 0.85
    assert match_score("abcdef", "xyz") == 0.0
    assert match_score("", "a") == 0.0


def test_is_subsequence():
    assert is_subsequence("大安森林公園網球場", "大安網球")
    assert not is_subsequence("大安森林公園網球場", "網球大安")


def test_find_best_match_prefers_exact_then_substring():
    assert find_best_match(VENUES, "臺北網球中心").id == "TTC"
    assert find_best_match(VENUES, "大安森林").id == "DAAN_FOREST"


def test_find_best_match_uses_normalised_score():
    assert find_best_match(VENUES, "臺北 網球-中心").id == "TTC"


def test_find_best_match_rejects_weak_queries():
    assert find_best_match(VENUES, "游泳池") is None
    assert find_best_match(VENUES, "  ") is None
    assert find_best_match([], "臺北") is None


def test_suggest_ranks_candidates():
    names = [venue.id for venue in suggest(VENUES, "公園網球場")]
    assert set(names) == {"DAAN_FOREST", "YF"}
    assert suggest(VENUES, "游泳池") == []
