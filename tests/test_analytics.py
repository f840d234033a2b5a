from datetime import datetime, timedelta, timezone

from services.quiz_engine import aggregate_submissions, conversion_rate

NOW = datetime(2026, 3, 18, 15, 30, tzinfo=timezone.utc)


def submission(days_ago=0, hours_ago=0, email=None, interest=None, timeline=None, smile="Glow-Up Seeker"):
    return {
        "email": email,
        "primary_interest": interest,
        "timeline": timeline,
        "smile_type_name": smile,
        "completed_at": NOW - timedelta(days=days_ago, hours=hours_ago),
    }


def test_aggregate_no_submissions():
    stats = aggregate_submissions([], now=NOW)
    assert stats.total_submissions == 0
    assert stats.conversion_rate == 0
    assert stats.submissions_with_email == 0
    assert stats.top_interests == []


def test_conversion_rate_rounds_half_up():
    assert conversion_rate(1, 8) == 13  # 12.5
    assert conversion_rate(1, 3) == 33
    assert conversion_rate(2, 3) == 67
    assert conversion_rate(0, 0) == 0


def test_aggregate_counts_and_windows():
    submissions = [
        submission(hours_ago=1, email="a@example.com"),
        submission(hours_ago=16),  # yesterday
        submission(days_ago=7, email="b@example.com"),  # same date a week ago, still inside
        submission(days_ago=8),
        submission(days_ago=30, email="  "),
    ]
    stats = aggregate_submissions(submissions, now=NOW)
    assert stats.total_submissions == 5
    assert stats.submissions_with_email == 2
    assert stats.conversion_rate == 40
    assert stats.submissions_today == 1
    assert stats.submissions_this_week == 3


def test_aggregate_treats_naive_timestamps_as_utc():
    naive = {"completed_at": NOW.replace(tzinfo=None) - timedelta(minutes=5)}
    stats = aggregate_submissions([naive], now=NOW)
    assert stats.submissions_today == 1


def test_distributions_group_literal_values():
    submissions = [
        submission(interest="whiter", timeline="asap"),
        submission(interest="whiter", timeline="soon"),
        submission(interest="whiter, straighter", timeline="asap"),
        submission(interest="healthier", smile="Healthy Smile Keeper"),
        submission(interest=None),
    ]
    stats = aggregate_submissions(submissions, now=NOW)

    interests = {item.value: item.count for item in stats.top_interests}
    assert interests == {"whiter": 2, "whiter, straighter": 1, "healthier": 1}
    assert stats.top_interests[0].value == "whiter"

    assert {item.value: item.count for item in stats.timeline_breakdown} == {"asap": 2, "soon": 1}
    assert {item.value: item.count for item in stats.smile_types} == {
        "Glow-Up Seeker": 4,
        "Healthy Smile Keeper": 1,
    }


def test_top_interests_limited_to_top_n():
    submissions = [submission(interest=f"interest-{i}") for i in range(8)]
    stats = aggregate_submissions(submissions, now=NOW, top_n=3)
    assert len(stats.top_interests) == 3
