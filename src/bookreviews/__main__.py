"""Main entry point for the bookreviews package."""

from bookreviews.cli import main


if __name__ == "__main__":
    main()
