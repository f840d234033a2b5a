"""
Smile assessment recommendation engine.

Scoring, ranking, classification and analytics are plain functions over
already-loaded data; nothing here touches the database, so the whole pipeline
can be driven from dicts in tests.
"""

import math
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from core.logging import get_logger
from schemas.quiz import Classification, CountItem, QuizStats, Recommendation

logger = get_logger(__name__)

DEFAULT_SMILE_TYPE = "preventive"

# Procedure category -> respondent-facing smile type name
SMILE_TYPES: Dict[str, str] = {
    "cosmetic": "Glow-Up Seeker",
    "orthodontic": "Alignment Achiever",
    "restorative": "Smile Rebuilder",
    "preventive": "Healthy Smile Keeper",
    "comfort": "Comfort-First Smiler",
}

OptionLookup = Union[Mapping[int, Mapping[str, int]], Callable[[int], Optional[Mapping[str, int]]]]
CatalogOrder = Union[Sequence[str], Mapping[str, int]]


def selected_option_ids(answer: Any) -> List[int]:
    """Option ids chosen in one answer, whether given as a schema, a dict or a bare id list."""
    if hasattr(answer, "option_ids"):
        return list(answer.option_ids)
    if hasattr(answer, "selected_options"):
        selected = answer.selected_options
    elif isinstance(answer, Mapping):
        selected = answer.get("selected", answer.get("selected_options", []))
    else:
        selected = answer
    if isinstance(selected, (list, tuple, set)):
        return list(selected)
    return [selected]


def _resolve(option_lookup: OptionLookup, option_id: int) -> Optional[Mapping[str, int]]:
    if callable(option_lookup):
        return option_lookup(option_id)
    return option_lookup.get(option_id)


def score_answers(
    answers: Iterable[Any],
    option_lookup: OptionLookup,
    catalog_keys: Iterable[str] = (),
) -> Dict[str, int]:
    """
    Sum the point-weights of every selected option into a score table.

    Weights for the same procedure key accumulate across options and answers.
    Option ids the lookup cannot resolve are skipped. Keys never referenced
    read as zero; ``catalog_keys`` only makes them explicit entries.
    """
    scores: Dict[str, int] = defaultdict(int)
    for key in catalog_keys:
        scores[key] = 0

    for answer in answers:
        for option_id in selected_option_ids(answer):
            points = _resolve(option_lookup, option_id)
            if points is None:
                logger.warning("resolution_gap", kind="option", option_id=option_id)
                continue
            for key, weight in points.items():
                scores[key] += int(weight)

    return scores


def catalog_positions(catalog_order: CatalogOrder) -> Dict[str, int]:
    if isinstance(catalog_order, Mapping):
        return dict(catalog_order)
    positions: Dict[str, int] = {}
    for index, key in enumerate(catalog_order):
        positions.setdefault(key, index)
    return positions


def rank_scores(score_table: Mapping[str, int], catalog_order: CatalogOrder) -> List[Recommendation]:
    """
    Every procedure with a positive score, best first.

    Ties fall back to catalog order. Keys missing from the catalog come after
    all cataloged keys with the same score, ordered by key.
    """
    positions = catalog_positions(catalog_order)
    uncataloged = len(positions)

    entries = [(key, score) for key, score in score_table.items() if score > 0]
    for key, _ in entries:
        if key not in positions:
            logger.warning("resolution_gap", kind="procedure", key=key)

    entries.sort(key=lambda entry: (-entry[1], positions.get(entry[0], uncataloged), entry[0]))
    return [Recommendation(key=key, score=score) for key, score in entries]


def default_classification() -> Classification:
    return Classification(smile_type=DEFAULT_SMILE_TYPE, smile_type_name=SMILE_TYPES[DEFAULT_SMILE_TYPE])


def classify(ranked: Sequence[Recommendation], procedure_categories: Mapping[str, Optional[str]]) -> Classification:
    """Smile type of the best-ranked procedure with a known category; preventive when there is none."""
    for recommendation in ranked:
        category = procedure_categories.get(recommendation.key)
        if category in SMILE_TYPES:
            return Classification(smile_type=category, smile_type_name=SMILE_TYPES[category])
        logger.warning("resolution_gap", kind="procedure_category", key=recommendation.key, category=category)
    return default_classification()


def snapshot_lookup(answers: Iterable[Any]) -> Dict[int, Dict[str, int]]:
    """Option points captured on stored answers, keyed by option id."""
    lookup: Dict[int, Dict[str, int]] = {}
    for answer in answers:
        snapshot = answer.get("option_points") if isinstance(answer, Mapping) else getattr(answer, "option_points", None)
        for option_id, points in (snapshot or {}).items():
            lookup[int(option_id)] = dict(points)
    return lookup


# Analytics

def _field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        # SQLite hands timestamps back naive; they are stored in UTC
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _distribution(values: Iterable[Optional[str]], limit: Optional[int] = None) -> List[CountItem]:
    counts = Counter(value for value in values if value)
    return [CountItem(value=value, count=count) for value, count in counts.most_common(limit)]


def conversion_rate(with_email: int, total: int) -> int:
    """Share of submissions that left an email, as a whole percent (half rounds up)."""
    if total <= 0:
        return 0
    return int(math.floor(with_email * 100 / total + 0.5))


def aggregate_submissions(
    submissions: Iterable[Any],
    now: Optional[datetime] = None,
    top_n: int = 5,
) -> QuizStats:
    """
    Summary statistics over stored submissions.

    ``primary_interest``, ``timeline`` and ``smile_type_name`` are grouped by
    their literal stored value, so a joined multi-value string is its own group.
    """
    now = _as_utc(now) or datetime.now(timezone.utc)
    week_start = (now - timedelta(days=7)).replace(hour=0, minute=0, second=0, microsecond=0)

    submissions = list(submissions)
    total = len(submissions)
    with_email = 0
    today = 0
    this_week = 0

    for submission in submissions:
        email = _field(submission, "email")
        if email and str(email).strip():
            with_email += 1
        completed_at = _as_utc(_field(submission, "completed_at"))
        if completed_at is None:
            continue
        if completed_at.date() == now.date():
            today += 1
        if completed_at >= week_start:
            this_week += 1

    return QuizStats(
        total_submissions=total,
        submissions_with_email=with_email,
        submissions_today=today,
        submissions_this_week=this_week,
        conversion_rate=conversion_rate(with_email, total),
        top_interests=_distribution((_field(s, "primary_interest") for s in submissions), limit=top_n),
        timeline_breakdown=_distribution(_field(s, "timeline") for s in submissions),
        smile_types=_distribution(_field(s, "smile_type_name") for s in submissions),
    )
