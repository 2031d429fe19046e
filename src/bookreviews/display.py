"""Presentation helpers for rating aggregates.

Stored averages keep full float precision; rounding happens only here.
"""


def format_rating(average_rating: float, review_count: int) -> str:
    """Format an average rating to one decimal, or 'N/A' when unrated."""
    if not review_count or average_rating <= 0:
        return "N/A"
    return f"{average_rating:.1f}"


def star_display(rating: int) -> str:
    """Get star rating display string for a 1-5 rating."""
    rating = max(0, min(5, int(rating)))
    return "★" * rating + "☆" * (5 - rating)
