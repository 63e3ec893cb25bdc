from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PostingClassifier(Protocol):
    """Classification of master-data ids, owned by the master-data catalogue."""

    def is_judicial_officer(self, designation_id: str) -> bool:
        """True when the designation belongs to a judge, justice or magistrate."""
        ...

    def is_office_category(self, posting_category_id: str) -> bool:
        """True when the posting category is an office category."""
        ...


_JUDICIAL_KEYWORDS = ("judge", "justice", "magistrate")


class InMemoryPostingClassifier:
    """In-memory stub that classifies ids by the titles they were seeded with."""

    def __init__(self) -> None:
        self._designations: dict[str, str] = {}
        self._categories: dict[str, str] = {}

    def seed_designation(self, designation_id: str, title: str) -> None:
        self._designations[designation_id] = title

    def seed_category(self, posting_category_id: str, title: str) -> None:
        self._categories[posting_category_id] = title

    def is_judicial_officer(self, designation_id: str) -> bool:
        title = self._designations.get(designation_id, "").lower()
        return any(keyword in title for keyword in _JUDICIAL_KEYWORDS)

    def is_office_category(self, posting_category_id: str) -> bool:
        return "office" in self._categories.get(posting_category_id, "").lower()


_posting_classifier: PostingClassifier = InMemoryPostingClassifier()


def get_posting_classifier() -> PostingClassifier:
    """FastAPI dependency for the master-data classifier."""
    return _posting_classifier


def set_posting_classifier(classifier: PostingClassifier) -> None:
    """Override the classifier (for testing or production wiring)."""
    global _posting_classifier
    _posting_classifier = classifier
