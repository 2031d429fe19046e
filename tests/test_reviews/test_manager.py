"""Tests for ReviewManager."""

import pytest

from bookreviews.books import BookManager
from bookreviews.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from bookreviews.profiles import ProfileManager
from bookreviews.reviews import ReviewManager


@pytest.fixture
def book_id(created_book):
    """ID of a book owned by alice."""
    return created_book.id


@pytest.fixture
def sample_review(reviews: ReviewManager, book_id):
    """Create a sample review by bob."""
    return reviews.submit(book_id, "bob", 4, "A desert epic.")


class TestSubmitReview:
    """Tests for review submission."""

    def test_submit_review(self, reviews: ReviewManager, book_id):
        """Test creating a review."""
        review = reviews.submit(book_id, "bob", 4, "A desert epic.")

        assert review.id is not None
        assert review.book_id == book_id
        assert review.author_id == "bob"
        assert review.rating == 4
        assert review.text == "A desert epic."
        assert review.star_display == "★★★★☆"

    def test_submit_updates_aggregates(self, reviews: ReviewManager, books: BookManager, book_id):
        reviews.submit(book_id, "bob", 4)
        reviews.submit(book_id, "carol", 5)
        reviews.submit(book_id, "dave", 2)

        book = books.get(book_id)
        assert book.review_count == 3
        assert book.average_rating == pytest.approx(11 / 3)

    def test_owner_may_review_own_book(self, reviews: ReviewManager, book_id):
        review = reviews.submit(book_id, "alice", 5)
        assert review.author_id == "alice"

    def test_text_is_optional(self, reviews: ReviewManager, book_id):
        review = reviews.submit(book_id, "bob", 3, "   ")
        assert review.text is None

    def test_duplicate_review_conflicts(
        self, reviews: ReviewManager, books: BookManager, book_id, sample_review
    ):
        """Test that a reader cannot review the same book twice."""
        with pytest.raises(ConflictError, match="already reviewed"):
            reviews.submit(book_id, "bob", 1, "Changed my mind")

        book = books.get(book_id)
        assert book.review_count == 1
        assert book.average_rating == 4.0
        assert reviews.get(sample_review.id).rating == 4

    @pytest.mark.parametrize("rating", [0, 6])
    def test_out_of_range_rating_rejected(self, reviews: ReviewManager, books: BookManager, book_id, rating):
        with pytest.raises(InvalidInputError) as exc_info:
            reviews.submit(book_id, "bob", rating)

        assert exc_info.value.fields == ["rating"]
        assert books.get(book_id).review_count == 0

    def test_fractional_rating_rejected(self, reviews: ReviewManager, book_id):
        with pytest.raises(InvalidInputError):
            reviews.submit(book_id, "bob", 4.5)

    def test_anonymous_submit_rejected(self, reviews: ReviewManager, book_id):
        with pytest.raises(UnauthorizedError, match="signed in"):
            reviews.submit(book_id, None, 4)

    def test_submit_for_missing_book(self, reviews: ReviewManager):
        with pytest.raises(NotFoundError, match="Book not found"):
            reviews.submit("missing", "bob", 4)

    def test_book_vanishing_before_insert_is_not_found(self, reviews: ReviewManager, monkeypatch):
        """Test that a foreign key failure is reported as a missing book, not a duplicate."""
        monkeypatch.setattr(reviews, "_lock_book", lambda session, book_id: None)

        with pytest.raises(NotFoundError, match="Book not found"):
            reviews.submit("missing", "bob", 4)


class TestAmendReview:
    """Tests for review amendments."""

    def test_amend_review(self, reviews: ReviewManager, books: BookManager, book_id):
        """Test that amending replaces the rating and recomputes the average."""
        review = reviews.submit(book_id, "bob", 3)
        assert books.get(book_id).average_rating == 3.0

        amended = reviews.amend(review.id, "bob", 5, "Better on a reread.")

        assert amended.rating == 5
        assert amended.text == "Better on a reread."
        assert amended.updated_at >= review.updated_at
        book = books.get(book_id)
        assert book.average_rating == 5.0
        assert book.review_count == 1

    def test_amend_clears_text(self, reviews: ReviewManager, sample_review):
        amended = reviews.amend(sample_review.id, "bob", 4)
        assert amended.text is None

    def test_non_author_amend_rejected(self, reviews: ReviewManager, sample_review):
        with pytest.raises(UnauthorizedError, match="Only the author"):
            reviews.amend(sample_review.id, "alice", 1)

        assert reviews.get(sample_review.id).rating == 4

    def test_amend_missing_review(self, reviews: ReviewManager):
        with pytest.raises(NotFoundError, match="Review not found"):
            reviews.amend("missing", "bob", 3)

    def test_invalid_amend_leaves_review_unchanged(self, reviews: ReviewManager, sample_review):
        with pytest.raises(InvalidInputError):
            reviews.amend(sample_review.id, "bob", 9)

        assert reviews.get(sample_review.id).rating == 4

    def test_non_author_with_invalid_rating_sees_ownership_error(
        self, reviews: ReviewManager, sample_review
    ):
        with pytest.raises(UnauthorizedError, match="Only the author"):
            reviews.amend(sample_review.id, "alice", 9)


class TestWithdrawReview:
    """Tests for review withdrawal."""

    def test_withdraw_last_review_resets_aggregates(
        self, reviews: ReviewManager, books: BookManager, book_id, sample_review
    ):
        reviews.withdraw(sample_review.id, "bob")

        book = books.get(book_id)
        assert book.review_count == 0
        assert book.average_rating == 0.0
        with pytest.raises(NotFoundError):
            reviews.get(sample_review.id)

    def test_withdraw_recomputes_remaining(
        self, reviews: ReviewManager, books: BookManager, book_id, sample_review
    ):
        reviews.submit(book_id, "carol", 2)
        reviews.withdraw(sample_review.id, "bob")

        book = books.get(book_id)
        assert book.review_count == 1
        assert book.average_rating == 2.0

    def test_non_author_withdraw_rejected(self, reviews: ReviewManager, sample_review):
        """Book owners cannot remove other readers' reviews."""
        with pytest.raises(UnauthorizedError):
            reviews.withdraw(sample_review.id, "alice")

        assert reviews.get(sample_review.id) is not None

    def test_can_review_again_after_withdraw(self, reviews: ReviewManager, book_id, sample_review):
        reviews.withdraw(sample_review.id, "bob")
        review = reviews.submit(book_id, "bob", 2)
        assert review.rating == 2


class TestListReviews:
    """Tests for review listings."""

    def test_list_for_book_newest_first(self, reviews: ReviewManager, book_id):
        first = reviews.submit(book_id, "bob", 4)
        second = reviews.submit(book_id, "carol", 3)
        third = reviews.submit(book_id, "dave", 5)

        listed = reviews.list_for_book(book_id)
        assert [r.id for r in listed] == [third.id, second.id, first.id]

    def test_list_for_book_without_reviews(self, reviews: ReviewManager, book_id):
        assert reviews.list_for_book(book_id) == []

    def test_list_for_missing_book(self, reviews: ReviewManager):
        with pytest.raises(NotFoundError):
            reviews.list_for_book("missing")

    def test_list_after_book_deleted(
        self, reviews: ReviewManager, books: BookManager, book_id, sample_review
    ):
        books.delete(book_id, "alice")
        with pytest.raises(NotFoundError):
            reviews.list_for_book(book_id)

    def test_find_by_author(self, reviews: ReviewManager, book_id, sample_review):
        assert reviews.find_by_author(book_id, "bob").id == sample_review.id
        assert reviews.find_by_author(book_id, "carol") is None
        assert reviews.find_by_author(book_id, None) is None

    def test_lookups_trim_author_identity(self, reviews: ReviewManager, book_id):
        """Test that a review submitted as ' bob ' is found as either spelling."""
        review = reviews.submit(book_id, " bob ", 4)

        assert reviews.find_by_author(book_id, " bob ").id == review.id
        assert reviews.find_by_author(book_id, "bob").id == review.id
        assert reviews.find_by_author(book_id, "   ") is None
        assert len(reviews.list_by_author(" bob ")) == 1
        assert reviews.list_by_author("") == []

    def test_list_with_names(
        self, reviews: ReviewManager, profiles: ProfileManager, book_id, sample_review
    ):
        profiles.upsert("bob", "Bob Reader")
        reviews.submit(book_id, "carol", 3)

        listed = reviews.list_for_book_with_names(book_id)
        names = {r.author_id: r.author_name for r in listed}
        assert names == {"bob": "Bob Reader", "carol": None}

    def test_list_by_author(self, reviews: ReviewManager, multiple_books):
        dune, dunebury, emma, _ = multiple_books
        reviews.submit(dune.id, "carol", 5)
        reviews.submit(emma.id, "carol", 3)
        reviews.submit(dunebury.id, "dave", 1)

        authored = reviews.list_by_author("carol")
        assert [r.book_title for r in authored] == ["Emma", "Dune"]
        assert authored[0].book_author == "Jane Austen"
        assert authored[1].star_display == "★★★★★"
