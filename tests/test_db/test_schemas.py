"""Tests for Pydantic schemas."""

from datetime import date

import pytest
from pydantic import ValidationError

from bookreviews.db.schemas import (
    BookCreate,
    BookResponse,
    BookUpdate,
    Genre,
    max_publication_year,
)
from bookreviews.reviews.schemas import ReviewInput


class TestBookCreate:
    """Tests for BookCreate schema."""

    def test_create_minimal_book(self):
        """Test creating a book with only required fields."""
        book = BookCreate(title="Test Book", author="Test Author")
        assert book.title == "Test Book"
        assert book.author == "Test Author"
        assert book.description is None
        assert book.genre is None
        assert book.publication_year is None

    def test_create_full_book(self, sample_book_data):
        """Test creating a book with all fields."""
        assert sample_book_data.title == "Dune"
        assert sample_book_data.genre == Genre.SCIENCE_FICTION
        assert sample_book_data.publication_year == 1965

    def test_title_and_author_are_trimmed(self):
        book = BookCreate(title="  Dune  ", author="\tFrank Herbert\n")
        assert book.title == "Dune"
        assert book.author == "Frank Herbert"

    @pytest.mark.parametrize("title", ["", "   "])
    def test_blank_title_rejected(self, title):
        """Test that empty or whitespace-only titles are rejected."""
        with pytest.raises(ValidationError):
            BookCreate(title=title, author="Author")

    def test_blank_author_rejected(self):
        with pytest.raises(ValidationError):
            BookCreate(title="Title", author="  ")

    def test_genre_from_string(self):
        book = BookCreate(title="T", author="A", genre="Non-Fiction")
        assert book.genre == Genre.NON_FICTION

    def test_unknown_genre_rejected(self):
        with pytest.raises(ValidationError):
            BookCreate(title="T", author="A", genre="Poetry")

    def test_blank_optional_fields_become_none(self):
        """Form-style empty strings mean the field was not given."""
        book = BookCreate(title="T", author="A", description="", genre="", publication_year="")
        assert book.description is None
        assert book.genre is None
        assert book.publication_year is None

    def test_year_bounds(self):
        """Test publication year validation."""
        assert BookCreate(title="T", author="A", publication_year=1000).publication_year == 1000
        next_year = date.today().year + 1
        assert max_publication_year() == next_year
        assert BookCreate(title="T", author="A", publication_year=next_year).publication_year == next_year

        with pytest.raises(ValidationError):
            BookCreate(title="T", author="A", publication_year=999)
        with pytest.raises(ValidationError):
            BookCreate(title="T", author="A", publication_year=next_year + 1)


class TestBookUpdate:
    """Tests for BookUpdate schema."""

    def test_partial_update(self):
        """Test that only the given fields are set."""
        update = BookUpdate(genre="Mystery")
        assert update.model_dump(exclude_unset=True) == {"genre": Genre.MYSTERY}

    def test_title_cannot_be_cleared(self):
        with pytest.raises(ValidationError, match="cannot be cleared"):
            BookUpdate(title=None)

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError):
            BookUpdate(title="   ")

    def test_description_can_be_cleared(self):
        update = BookUpdate(description="")
        assert update.model_dump(exclude_unset=True) == {"description": None}

    def test_no_owner_or_aggregate_fields(self):
        """Owner and rating aggregates are not writable through updates."""
        update = BookUpdate(owner_id="mallory", average_rating=5.0, review_count=99)
        assert update.model_dump(exclude_unset=True) == {}


class TestBookResponse:
    """Tests for BookResponse schema."""

    def test_from_orm_book(self, created_book):
        response = BookResponse.model_validate(created_book)
        assert response.id == created_book.id
        assert response.owner_id == "alice"
        assert response.genre == Genre.SCIENCE_FICTION
        assert response.rating_display == "N/A"


class TestReviewInput:
    """Tests for ReviewInput schema."""

    @pytest.mark.parametrize("rating", [1, 2, 3, 4, 5])
    def test_valid_ratings(self, rating):
        assert ReviewInput(rating=rating).rating == rating

    @pytest.mark.parametrize("rating", [0, 6, -1])
    def test_out_of_range_rejected(self, rating):
        with pytest.raises(ValidationError):
            ReviewInput(rating=rating)

    @pytest.mark.parametrize("rating", [4.5, "4", True])
    def test_non_integer_rejected(self, rating):
        """Ratings are whole stars and are not coerced."""
        with pytest.raises(ValidationError):
            ReviewInput(rating=rating)

    def test_blank_text_is_none(self):
        assert ReviewInput(rating=3, text="   ").text is None

    def test_text_is_trimmed(self):
        assert ReviewInput(rating=3, text="  Loved it. ").text == "Loved it."
