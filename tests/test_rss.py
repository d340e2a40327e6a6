import pytest

from ingest.rss import ParseError, parse_feed

SAMPLE_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Test feed</title>
    <link>https://news.example.com</link>
    <item>
      <title>Gunmen attack village</title>
      <link>https://news.example.com/gunmen-attack</link>
      <description>&lt;p&gt;Residents fled overnight&lt;/p&gt;</description>
    </item>
    <item>
      <title>  Markets close higher  </title>
      <link>https://news.example.com/markets</link>
      <description>Stocks rallied.</description>
    </item>
    <item>
      <link>https://news.example.com/untitled</link>
      <description>No title here</description>
    </item>
  </channel>
</rss>
"""

EMPTY_RSS = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>Quiet feed</title></channel></rss>
"""


def test_parse_feed_extracts_items():
    items = list(parse_feed(SAMPLE_RSS))

    assert [i.title for i in items] == ["Gunmen attack village", "Markets close higher"]
    first = items[0]
    assert first.link == "https://news.example.com/gunmen-attack"
    assert first.description == "Residents fled overnight"


def test_parse_feed_is_lazy_and_single_pass():
    items = parse_feed(SAMPLE_RSS)
    assert next(items).title == "Gunmen attack village"
    assert len(list(items)) == 1
    assert list(items) == []


def test_feed_without_items_is_empty_not_an_error():
    assert list(parse_feed(EMPTY_RSS)) == []


def test_unreadable_document_raises_parse_error():
    with pytest.raises(ParseError):
        list(parse_feed("this is not a feed at all"))
