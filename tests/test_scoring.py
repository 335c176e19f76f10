from datetime import datetime, timedelta

import pytest

import scoring
from errors import ConfigurationError
from scoring import Entry, ScoreRecord, LikesCriterion, ManualCriterion, ViewsCriterion

T0 = datetime(2026, 3, 1, 12, 0)


def entry(submission_id, likes=0, views=0, minutes=0, project_id=None):
    return Entry(
        submission_id=submission_id,
        project_id=project_id or submission_id * 100,
        likes=likes,
        views=views,
        submitted_at=T0 + timedelta(minutes=minutes),
    )


def test_parse_metrics_config_builds_tagged_criteria():
    criteria = scoring.parse_metrics_config([
        {'name': 'Design', 'type': 'manual', 'weight': 40},
        {'name': '', 'type': 'likes', 'weight': '30'},
        {'type': 'views', 'weight': 30},
    ])
    assert criteria == [
        ManualCriterion('Design', 40),
        LikesCriterion('Community Likes', 30),
        ViewsCriterion('Total Views', 30),
    ]
    assert [c.type for c in criteria] == ['manual', 'likes', 'views']
    assert scoring.dump_metrics_config(criteria)[1] == {'name': 'Community Likes', 'type': 'likes', 'weight': 30}


@pytest.mark.parametrize('config', [
    [{'name': 'Design', 'type': 'stars', 'weight': 100}],
    [{'name': '', 'type': 'manual', 'weight': 100}],
    [{'name': 'Design', 'type': 'manual', 'weight': 12.5}],
    [{'name': 'Design', 'type': 'manual', 'weight': -10}],
    [{'name': 'Design', 'type': 'manual', 'weight': 50}, {'name': 'Design', 'type': 'manual', 'weight': 50}],
    ['Design'],
    {'name': 'Design'},
])
def test_parse_metrics_config_rejects_bad_criteria(config):
    with pytest.raises(ConfigurationError):
        scoring.parse_metrics_config(config)


def test_validate_weights():
    scoring.validate_weights([ManualCriterion('A', 60), LikesCriterion('L', 40)])
    with pytest.raises(ConfigurationError, match='90%'):
        scoring.validate_weights([ManualCriterion('A', 60), LikesCriterion('L', 30)])
    with pytest.raises(ConfigurationError):
        scoring.validate_weights([])
    assert not scoring.weights_are_valid([ManualCriterion('A', 110)])


# --- Normalization ---

@pytest.mark.parametrize('raw,maximum', [
    (0, 0), (0, 1), (1, 1), (3, 7), (7, 7), (12, 5), (1000000, 1000000), (5, 0),
])
def test_normalized_value_stays_within_bounds(raw, maximum):
    value = scoring.normalize_metric(raw, maximum)
    assert 0.0 <= value <= 10.0


def test_normalize_metric_is_zero_when_maximum_is_zero():
    assert scoring.normalize_metric(0, 0) == 0.0
    assert scoring.normalize_metric(5, 0) == 0.0


def test_normalize_metric_scales_against_maximum():
    assert scoring.normalize_metric(5, 10) == pytest.approx(5.0)
    assert scoring.normalize_metric(50, 100) == pytest.approx(5.0)
    assert scoring.normalize_metric(100, 100) == pytest.approx(10.0)


def test_contest_maxima_floors_at_one():
    assert scoring.contest_maxima([entry(1), entry(2)]) == {'likes': 1, 'views': 1}
    assert scoring.contest_maxima([entry(1, likes=4, views=9), entry(2, likes=7, views=3)]) == {'likes': 7, 'views': 9}
    assert scoring.contest_maxima([]) == {'likes': 1, 'views': 1}


def test_all_zero_counters_normalize_to_zero():
    entries = [entry(1), entry(2), entry(3)]
    results = scoring.compute_results([LikesCriterion('Likes', 50), ViewsCriterion('Views', 50)], entries, [])
    assert all(r.composite == 0.0 for r in results)


# --- Aggregation ---

def test_manual_average_ignores_missing_and_non_numeric_values():
    records = [
        ScoreRecord(1, 1, {'Design': 8}),
        ScoreRecord(1, 2, {'Design': None}),
        ScoreRecord(1, 3, {'Code': 4}),
        ScoreRecord(1, 4, {'Design': 'ten'}),
        ScoreRecord(1, 5, {'Design': True}),
        ScoreRecord(1, 6, {'Design': 6.0}),
        ScoreRecord(1, 7, {}),
    ]
    assert scoring.manual_average(records, 'Design') == pytest.approx(7.0)
    assert scoring.manual_average(records, 'Originality') == 0.0


def test_weighted_sum():
    criteria = [ManualCriterion('Design', 40), ManualCriterion('Code', 30), LikesCriterion('Likes', 30)]
    entries = [entry(1, likes=5), entry(2, likes=20)]
    records = [
        ScoreRecord(100, 1, {'Design': 7, 'Code': 6}),
        ScoreRecord(100, 2, {'Design': 9}),
    ]
    results = {r.entry.submission_id: r for r in scoring.compute_results(criteria, entries, records)}

    first = results[1]
    assert first.values['Design'] == pytest.approx(8.0)
    assert first.values['Code'] == pytest.approx(6.0)
    assert first.values['Likes'] == pytest.approx(2.5)
    assert first.composite == pytest.approx(5.75)

    # No judge sheets at all: only likes count
    assert results[2].composite == pytest.approx(3.0)


def test_missing_scores_contribute_zero():
    criteria = [ManualCriterion('Design', 50), ManualCriterion('Code', 50)]
    entries = [entry(1), entry(2)]
    records = [
        ScoreRecord(100, 1, {'Design': 8, 'Code': 8}),
        ScoreRecord(100, 2, {'Design': 8, 'Code': 8}),
        ScoreRecord(200, 1, {'Design': 8}),
    ]
    results = {r.entry.submission_id: r for r in scoring.compute_results(criteria, entries, records)}
    assert results[1].composite == pytest.approx(8.0)
    assert results[2].values['Code'] == 0.0
    assert results[2].composite == pytest.approx(4.0)


def test_weights_not_summing_to_100_are_applied_as_given():
    criteria = [ManualCriterion('Design', 150)]
    results = scoring.compute_results(criteria, [entry(1)], [ScoreRecord(100, 1, {'Design': 10})])
    assert results[0].composite == pytest.approx(15.0)


def test_composite_is_monotonic_in_a_criterion_value():
    criteria = [ManualCriterion('Design', 60), ViewsCriterion('Views', 40)]
    maxima = {'likes': 1, 'views': 10}
    low = scoring.score_entry(entry(1, views=5), criteria, [ScoreRecord(100, 1, {'Design': 4})], maxima)[1]
    high = scoring.score_entry(entry(1, views=5), criteria, [ScoreRecord(100, 1, {'Design': 6})], maxima)[1]
    assert high > low


# --- Ranking ---

def test_end_to_end_scenario():
    criteria = scoring.parse_metrics_config([
        {'name': 'Design', 'type': 'manual', 'weight': 40},
        {'name': 'Likes', 'type': 'likes', 'weight': 30},
        {'name': 'Views', 'type': 'views', 'weight': 30},
    ])
    entries = [entry(1, likes=10, views=100), entry(2, likes=5, views=100), entry(3, likes=0, views=50)]
    records = [ScoreRecord(e.project_id, 1, {'Design': d}) for e, d in zip(entries, [9, 7, 5])]

    results = scoring.compute_results(criteria, entries, records)

    assert [r.entry.submission_id for r in results] == [1, 2, 3]
    assert [r.composite for r in results] == pytest.approx([9.6, 7.3, 3.5])
    assert [r.values['Likes'] for r in results] == pytest.approx([10, 5, 0])
    assert [r.values['Views'] for r in results] == pytest.approx([10, 10, 5])
    assert [r.rank for r in results] == [1, 2, 3]
    assert all(r.is_winner for r in results)


def test_rank_follows_composite_order():
    criteria = [ManualCriterion('Design', 100)]
    designs = [3, 9, 1, 7, 5, 8, 2]
    entries = [entry(i + 1) for i in range(len(designs))]
    records = [ScoreRecord(e.project_id, 1, {'Design': d}) for e, d in zip(entries, designs)]

    results = scoring.compute_results(criteria, entries, records)

    for a in results:
        for b in results:
            if a.composite > b.composite:
                assert a.rank < b.rank
    assert sorted(r.rank for r in results) == list(range(1, len(designs) + 1))


def test_top_three_are_winners():
    criteria = [ManualCriterion('Design', 100)]
    entries = [entry(i + 1) for i in range(5)]
    records = [ScoreRecord(e.project_id, 1, {'Design': d}) for e, d in zip(entries, [2, 10, 4, 8, 6])]

    results = scoring.compute_results(criteria, entries, records)

    winners = {r.entry.submission_id for r in results if r.is_winner}
    assert winners == {2, 4, 5}


def test_fewer_entries_than_winner_slots():
    criteria = [ManualCriterion('Design', 100)]
    results = scoring.compute_results(criteria, [entry(1), entry(2)], [])
    assert [r.is_winner for r in results] == [True, True]


def test_winner_count_is_configurable():
    criteria = [ManualCriterion('Design', 100)]
    results = scoring.compute_results(criteria, [entry(i) for i in range(1, 5)], [], winner_count=1)
    assert [r.is_winner for r in results] == [True, False, False, False]


def test_ties_go_to_the_earlier_submission():
    criteria = [ManualCriterion('Design', 100)]
    entries = [entry(1, minutes=30), entry(2, minutes=10), entry(3, minutes=10), entry(4, minutes=0)]
    records = [ScoreRecord(e.project_id, 1, {'Design': 5}) for e in entries]

    results = scoring.compute_results(criteria, entries, records)

    # Equal scores: earliest first, equal timestamps by submission id
    assert [r.entry.submission_id for r in results] == [4, 2, 3, 1]


def test_ranking_is_repeatable():
    criteria = [ManualCriterion('Design', 70), LikesCriterion('Likes', 30)]
    entries = [entry(i, likes=i * 3 % 7, minutes=i) for i in range(1, 8)]
    records = [ScoreRecord(e.project_id, 1, {'Design': (e.submission_id * 5) % 11}) for e in entries]

    first = scoring.compute_results(criteria, entries, records)
    second = scoring.compute_results(criteria, list(reversed(entries)), list(reversed(records)))

    assert [(r.entry.submission_id, r.rank, r.composite, r.is_winner) for r in first] == \
        [(r.entry.submission_id, r.rank, r.composite, r.is_winner) for r in second]


def test_no_entries_means_no_results():
    assert scoring.compute_results([ManualCriterion('Design', 100)], [], []) == []
