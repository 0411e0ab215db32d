"""
Officer performance aggregation.

Everything here works on the plain dicts produced by `placement_to_dict`
and `officer_to_dict`, so it can run over a role-scoped view as easily as
over the whole database. Months are 0-based (January is 0) throughout.
"""
import calendar
import math
from dataclasses import dataclass

from django.conf import settings

from .utils import as_date, round_half_up

MONTH_LABELS = [calendar.month_abbr[i] for i in range(1, 13)]


@dataclass(frozen=True)
class ScoringWeights:
    placement_weight: int = 25
    company_weight: int = 20
    time_penalty: int = 2
    cap: int = 100

    @classmethod
    def from_settings(cls):
        config = getattr(settings, 'PERFORMANCE_SCORING', {}) or {}
        return cls(
            placement_weight=config.get('PLACEMENT_WEIGHT', cls.placement_weight),
            company_weight=config.get('COMPANY_WEIGHT', cls.company_weight),
            time_penalty=config.get('TIME_PENALTY', cls.time_penalty),
            cap=config.get('SCORE_CAP', cls.cap),
        )


def _matches_period(day, month, year):
    if year is None:
        return True
    if day.year != year:
        return False
    return month is None or day.month - 1 == month


def filter_placements(placements, month=None, year=None, officer_id=None):
    """
    Apply the period and officer filters.

    A month without a year is ignored. Placements whose date does not parse
    are dropped whenever a period filter is active.
    """
    selected = []
    for placement in placements:
        if year is not None:
            day = as_date(placement.get('placement_date'))
            if day is None or not _matches_period(day, month, year):
                continue
        if officer_id is not None and placement.get('placement_officer_id') != officer_id:
            continue
        selected.append(placement)
    return selected


def average_placement_days(placements):
    """Mean days from `started_at` to `placement_date`, one decimal; 0 if unknown."""
    spans = []
    for placement in placements:
        started = as_date(placement.get('started_at'))
        placed = as_date(placement.get('placement_date'))
        if started is None or placed is None:
            continue
        spans.append((placed - started).days)
    if not spans:
        return 0
    return round_half_up(sum(spans) / len(spans) * 10) / 10


def compute_officer_metrics(placements, officers, month=None, year=None, officer_id=None):
    filtered = filter_placements(placements, month=month, year=year, officer_id=officer_id)

    by_officer = {officer['id']: [] for officer in officers}
    for placement in filtered:
        bucket = by_officer.get(placement.get('placement_officer_id'))
        # Orphaned officer references are a data issue, not an error
        if bucket is None:
            continue
        if as_date(placement.get('placement_date')) is None:
            continue
        bucket.append(placement)

    metrics = []
    for officer in officers:
        handled = by_officer[officer['id']]
        total = len(handled)
        completed = sum(1 for p in handled if p.get('status') == 'completed')
        in_progress = sum(1 for p in handled if p.get('status') == 'in_progress')
        companies = {p.get('company_id') for p in handled if p.get('company_id') is not None}
        dates = sorted((as_date(p.get('placement_date')) for p in handled), reverse=True)

        metrics.append({
            'id': officer['id'],
            'name': officer.get('name', ''),
            'totalPlacements': total,
            'completedPlacements': completed,
            'inProgressPlacements': in_progress,
            'companiesCollaborated': len(companies),
            'averagePlacementTime': average_placement_days(handled),
            'placementSuccessRate': round_half_up(completed / total * 100) if total else 0,
            'lastPlacementDate': dates[0].isoformat() if dates else '',
        })
    return metrics


def score_officer(metrics, weights=None):
    weights = weights or ScoringWeights.from_settings()
    placement_score = min(metrics['completedPlacements'] * weights.placement_weight, weights.cap)
    company_score = min(metrics['companiesCollaborated'] * weights.company_weight, weights.cap)
    time_score = max(0, weights.cap - metrics['averagePlacementTime'] * weights.time_penalty)
    return {
        'id': metrics['id'],
        'name': metrics['name'],
        'placementScore': placement_score,
        'companyEngagementScore': company_score,
        'timeEfficiencyScore': time_score,
        'overallScore': math.floor((placement_score + company_score + time_score) / 3),
    }


def compute_performance_scores(metrics, weights=None):
    weights = weights or ScoringWeights.from_settings()
    scores = [score_officer(m, weights) for m in metrics]
    scores.sort(key=lambda s: s['overallScore'], reverse=True)
    return scores


def summarize_metrics(metrics, companies):
    if metrics:
        average_rate = round_half_up(
            sum(m['placementSuccessRate'] for m in metrics) / len(metrics)
        )
    else:
        average_rate = 0
    return {
        'totalPlacements': sum(m['totalPlacements'] for m in metrics),
        'completedPlacements': sum(m['completedPlacements'] for m in metrics),
        'activeCompanies': sum(1 for c in companies if c.get('collaboration_status') == 'active'),
        'averageSuccessRate': average_rate,
    }


def top_officers(metrics, limit=5):
    ranked = sorted(metrics, key=lambda m: m['completedPlacements'], reverse=True)
    return ranked[:limit]


def monthly_breakdown(placements, year, month=None, officer_id=None):
    """Placements, completions and distinct companies per month of `year`."""
    months = [month] if month is not None else list(range(12))
    rows = []
    for index in months:
        selected = filter_placements(placements, month=index, year=year, officer_id=officer_id)
        rows.append({
            'month': MONTH_LABELS[index],
            'placements': len(selected),
            'completions': sum(1 for p in selected if p.get('status') == 'completed'),
            'companies': len({p.get('company_id') for p in selected if p.get('company_id') is not None}),
        })
    return rows
