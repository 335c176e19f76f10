# scoring.py
# Contest scoring: metric normalization, weighted composite and ranking.
# Pure functions over data already loaded from the database; nothing here
# touches the session, so the live matrix and finalization share one path.

import math
from collections import namedtuple, defaultdict
from datetime import datetime

from errors import ConfigurationError

MANUAL = 'manual'
LIKES = 'likes'
VIEWS = 'views'
CRITERION_TYPES = (MANUAL, LIKES, VIEWS)

DEFAULT_NAMES = {
    LIKES: 'Community Likes',
    VIEWS: 'Total Views',
}

NORMALIZED_MAX = 10.0


class ManualCriterion(namedtuple('ManualCriterion', 'name weight')):
    __slots__ = ()
    type = MANUAL


class LikesCriterion(namedtuple('LikesCriterion', 'name weight')):
    __slots__ = ()
    type = LIKES


class ViewsCriterion(namedtuple('ViewsCriterion', 'name weight')):
    __slots__ = ()
    type = VIEWS


CRITERION_CLASSES = {
    MANUAL: ManualCriterion,
    LIKES: LikesCriterion,
    VIEWS: ViewsCriterion,
}

# One submission as the scoring code sees it
Entry = namedtuple('Entry', 'submission_id project_id likes views submitted_at')

# One judge's score sheet for one project
ScoreRecord = namedtuple('ScoreRecord', 'project_id judge_id scores')

RankedEntry = namedtuple('RankedEntry', 'entry values composite rank is_winner')


def _parse_weight(raw_weight, position):
    weight = raw_weight
    if isinstance(weight, str) and weight.strip().isdigit():
        weight = int(weight.strip())
    if isinstance(weight, bool) or not isinstance(weight, int):
        raise ConfigurationError(f'Criterion #{position + 1}: weight must be a whole percent, got {raw_weight!r}.')
    if weight < 0:
        raise ConfigurationError(f'Criterion #{position + 1}: weight cannot be negative.')
    return weight


def parse_metrics_config(raw):
    """
    Turns the stored metrics_config list into criterion objects.

    Each item is ``{"name": str, "type": "manual"|"likes"|"views", "weight": int}``.
    Likes/views criteria get a default name when none is stored. Names must be
    unique because judges' score sheets and the matrix are keyed by them.
    Weights are not required to add up to 100 here, see ``validate_weights``.
    """
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ConfigurationError('metrics_config must be a list of criteria.')

    criteria = []
    seen_names = set()
    for position, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ConfigurationError(f'Criterion #{position + 1} is not an object.')

        kind = item.get('type')
        if kind not in CRITERION_CLASSES:
            raise ConfigurationError(
                f'Criterion #{position + 1}: unknown type {kind!r} (expected one of {", ".join(CRITERION_TYPES)}).'
            )

        name = (item.get('name') or '').strip()
        if not name:
            if kind == MANUAL:
                raise ConfigurationError(f'Criterion #{position + 1}: judged criteria need a name.')
            name = DEFAULT_NAMES[kind]

        if name in seen_names:
            raise ConfigurationError(f'Criterion name "{name}" is used twice.')
        seen_names.add(name)

        weight = _parse_weight(item.get('weight'), position)
        criteria.append(CRITERION_CLASSES[kind](name=name, weight=weight))

    return criteria


def dump_metrics_config(criteria):
    return [{'name': c.name, 'type': c.type, 'weight': c.weight} for c in criteria]


def manual_criteria(criteria):
    return [c for c in criteria if isinstance(c, ManualCriterion)]


def total_weight(criteria):
    return sum(c.weight for c in criteria)


def weights_are_valid(criteria):
    return bool(criteria) and total_weight(criteria) == 100


def validate_weights(criteria):
    if not criteria:
        raise ConfigurationError('The contest has no scoring criteria.')
    total = total_weight(criteria)
    if total != 100:
        raise ConfigurationError(f'Scoring weights must total 100% (currently {total}%). Fix the criteria weights first.')


# --- Metric normalization ---

def contest_maxima(entries):
    """
    Highest likes/views across the current submission set, floored at 1.
    Recomputed on every run since the set grows while the contest is open.
    """
    return {
        LIKES: max([e.likes or 0 for e in entries] + [1]),
        VIEWS: max([e.views or 0 for e in entries] + [1]),
    }


def normalize_metric(raw, maximum):
    """Rescales a raw counter to 0..10 relative to the contest maximum."""
    if not maximum or maximum <= 0:
        return 0.0
    value = (raw or 0) / max(maximum, 1) * NORMALIZED_MAX
    return min(max(value, 0.0), NORMALIZED_MAX)


# --- Weighted aggregation ---

def is_score_value(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def manual_average(records, name):
    """Mean of every judge's value for ``name``; 0 when nobody has scored it yet."""
    values = [r.scores.get(name) for r in records if r.scores]
    values = [v for v in values if is_score_value(v)]
    if not values:
        return 0.0
    return sum(values) / len(values)


def criterion_value(criterion, entry, records, maxima):
    if isinstance(criterion, ManualCriterion):
        return manual_average(records, criterion.name)
    if isinstance(criterion, LikesCriterion):
        return normalize_metric(entry.likes, maxima[LIKES])
    if isinstance(criterion, ViewsCriterion):
        return normalize_metric(entry.views, maxima[VIEWS])
    raise TypeError(f'Unsupported criterion: {criterion!r}')


def score_entry(entry, criteria, records, maxima):
    """
    Returns ``(values, composite)`` for one submission.

    ``values`` maps criterion name to its 0..10 value in config order;
    ``composite`` is the weighted sum at full precision. Weights are applied
    as given even when they do not add up to 100.
    """
    values = {}
    composite = 0.0
    for criterion in criteria:
        value = criterion_value(criterion, entry, records, maxima)
        values[criterion.name] = value
        composite += value * criterion.weight / 100
    return values, composite


# --- Ranking ---

def _ranking_key(item):
    entry, _, composite = item
    # Ties: the earlier submission wins, then the lower submission id
    submitted_at = entry.submitted_at or datetime.max
    return (-composite, submitted_at, entry.submission_id)


def rank_entries(scored, winner_count=3):
    """
    ``scored`` is a list of ``(entry, values, composite)``. Returns RankedEntry
    rows sorted best first, with 1-based ranks and the top ``winner_count``
    flagged as winners.
    """
    ordered = sorted(scored, key=_ranking_key)
    return [
        RankedEntry(
            entry=entry,
            values=values,
            composite=composite,
            rank=position,
            is_winner=position <= winner_count,
        )
        for position, (entry, values, composite) in enumerate(ordered, start=1)
    ]


def group_records(records):
    by_project = defaultdict(list)
    for record in records:
        by_project[record.project_id].append(record)
    return by_project


def compute_results(criteria, entries, records, winner_count=3):
    """Normalizes, aggregates and ranks every submission of one contest."""
    if not entries:
        return []

    maxima = contest_maxima(entries)
    records_by_project = group_records(records)

    scored = []
    for entry in entries:
        values, composite = score_entry(entry, criteria, records_by_project.get(entry.project_id, []), maxima)
        scored.append((entry, values, composite))

    return rank_entries(scored, winner_count=winner_count)


def round_score(value, precision=2):
    return round(value, precision)
