from collections import Counter
from curator.tools.sampler import round_half_up, sample, sample_with_stats, sort_by_recency
from tests.fakes import make_article


def _pool(section: str, size: int):
    # Day-of-month descending keeps generation order equal to recency order
    return [make_article(f"{section}/{i}", f"2025-01-{28 - (i % 28):02d}T10:00:00Z") for i in range(size)]


def test_proportional_split_tech_300_world_100():
    pools = {"tech": _pool("tech", 300), "world": _pool("world", 100)}
    articles, stats = sample_with_stats(pools, ["tech", "world"], 100)

    counts = Counter(a.section_name for a in articles)
    assert counts == {"tech": 75, "world": 25}
    assert [(s.section, s.available, s.selected) for s in stats] == [("tech", 300, 75), ("world", 100, 25)]


def test_below_cap_returns_everything():
    pools = {"a": _pool("a", 3), "b": _pool("b", 2)}
    articles = sample(pools, ["a", "b"], 10)
    assert len(articles) == 5
    assert [a.id for a in articles[:3]] == [a.id for a in sort_by_recency(pools["a"])]


def test_respects_cap_and_pool_sizes():
    cases = [
        ({"a": 10, "b": 10, "c": 10}, 2),
        ({"a": 1, "b": 50, "c": 7}, 20),
        ({"a": 500, "b": 3}, 100),
        ({"a": 33, "b": 33, "c": 34}, 50),
    ]
    for sizes, cap in cases:
        pools = {name: _pool(name, size) for name, size in sizes.items()}
        articles, stats = sample_with_stats(pools, list(sizes), cap)
        assert len(articles) <= cap
        counts = Counter(a.section_name for a in articles)
        for name, size in sizes.items():
            assert counts.get(name, 0) <= size
        assert sum(s.selected for s in stats) == len(articles)


def test_rounding_overflow_is_trimmed_from_last_sections():
    pools = {name: _pool(name, 10) for name in ("a", "b", "c")}
    articles, stats = sample_with_stats(pools, ["a", "b", "c"], 2)

    # Each quota rounds 0.67 up to 1, the third one is cut
    assert [a.section_name for a in articles] == ["a", "b"]
    assert [s.selected for s in stats] == [1, 1, 0]


def test_missing_dates_sort_last():
    pool = [
        make_article("x/undated"),
        make_article("x/old", "2024-05-01T00:00:00Z"),
        make_article("x/bad", "not a date"),
        make_article("x/new", "2025-05-01T00:00:00Z"),
    ]
    assert [a.id for a in sort_by_recency(pool)] == ["x/new", "x/old", "x/undated", "x/bad"]


def test_equal_dates_keep_input_order():
    pool = [make_article(f"x/{i}", "2025-01-01T00:00:00Z") for i in range(5)]
    assert [a.id for a in sort_by_recency(pool)] == [f"x/{i}" for i in range(5)]


def test_missing_section_key_counts_as_empty_pool():
    pools = {"a": _pool("a", 4)}
    articles, stats = sample_with_stats(pools, ["a", "ghost"], 2)
    assert len(articles) == 2
    assert stats[1].section == "ghost" and stats[1].available == 0 and stats[1].selected == 0


def test_round_half_up():
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2
