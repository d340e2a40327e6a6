from process.keywords import first_match, load_keywords, matches
from storage.models import FeedItem

KEYWORDS = ["attack", "gunmen", "niger delta"]


def _item(title, description=""):
    return FeedItem(title=title, link="https://example.com", description=description)


def test_keyword_in_title_matches():
    assert matches(_item("Gunmen attack village"), KEYWORDS)


def test_keyword_in_description_matches_regardless_of_case():
    item = _item("Morning update", "Tension rises across the NIGER DELTA region")
    assert matches(item, KEYWORDS)
    assert first_match(item, KEYWORDS) == "niger delta"


def test_substring_inside_longer_word_matches():
    assert matches(_item("Counter-ATTACKS reported"), KEYWORDS)


def test_no_keyword_no_match():
    assert not matches(_item("Football results", "Local club wins cup"), KEYWORDS)


def test_keyword_spanning_title_and_description():
    # Title and description are joined with a single space.
    assert matches(_item("Unrest in the Niger", "Delta communities"), KEYWORDS)


def test_first_match_follows_configured_order():
    item = _item("Gunmen attack village")
    assert first_match(item, KEYWORDS) == "attack"
    assert first_match(item, ["gunmen", "attack"]) == "gunmen"


def test_empty_keyword_list_never_matches():
    assert not matches(_item("Gunmen attack village"), [])


def test_load_keywords_normalises_config():
    assert load_keywords(["  Attack ", "", "KILL", "attack", None]) == ["attack", "kill"]
    assert load_keywords(None) == []
