from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from .content import Document
from .utils import slugify


class DocumentCollection(Sequence[Document]):
    """Lightweight helper for working with lists of Documents in templates and code."""

    def __init__(self, documents: Iterable[Document]):
        self._documents = list(documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return DocumentCollection(self._documents[item])
        return self._documents[item]

    def section(self, name: str) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if d.section == name)

    def in_sections(self, names: Iterable[str]) -> DocumentCollection:
        """Documents in the named sections; any section when ``names`` is empty."""
        wanted = set(names)
        if not wanted:
            return DocumentCollection(d for d in self._documents if d.section)
        return DocumentCollection(d for d in self._documents if d.section in wanted)

    def with_tag(self, tag: str) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if tag in d.tags)

    def with_category(self, category: str) -> DocumentCollection:
        return DocumentCollection(
            d for d in self._documents if category in d.categories
        )

    def visible(
        self, include_drafts: bool, include_future: bool, now: datetime
    ) -> DocumentCollection:
        """Drop drafts and future-dated documents unless asked to keep them."""
        return DocumentCollection(
            d
            for d in self._documents
            if (include_drafts or not d.draft)
            and (include_future or not d.is_future(now))
        )

    def sorted(self) -> DocumentCollection:
        """Sort newest first, breaking date ties by ascending source path.

        Python's sort is stable, so sorting by path first and then by date
        in reverse keeps equal-dated documents in path order.
        """
        by_path = sorted(self._documents, key=lambda d: d.path.as_posix())
        return DocumentCollection(sorted(by_path, key=lambda d: d.date, reverse=True))

    def latest(self, count: int = 5) -> DocumentCollection:
        return self.sorted()[:count]

    def sections(self) -> list[str]:
        return sorted({d.section for d in self._documents if d.section})

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"DocumentCollection({len(self._documents)} documents)"


@dataclass(frozen=True)
class Term:
    """One tag or category with its slug and documents, newest first."""

    name: str
    slug: str
    documents: DocumentCollection

    @property
    def count(self) -> int:
        return len(self.documents)


class Taxonomy(Mapping[str, Term]):
    """Mapping of term slug to Term for one taxonomy (tags or categories).

    Terms whose names slugify identically are merged under the first name
    seen in path order.
    """

    def __init__(self, name: str, documents: Iterable[Document], attribute: str):
        self.name = name
        grouped: dict[str, list[Document]] = {}
        names: dict[str, str] = {}
        for document in sorted(documents, key=lambda d: d.path.as_posix()):
            for term in getattr(document, attribute):
                slug = slugify(term)
                names.setdefault(slug, term)
                bucket = grouped.setdefault(slug, [])
                if document not in bucket:
                    bucket.append(document)
        self._terms = {
            slug: Term(names[slug], slug, DocumentCollection(docs).sorted())
            for slug, docs in sorted(grouped.items())
        }

    def __getitem__(self, key: str) -> Term:
        return self._terms[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._terms)

    def __len__(self) -> int:
        return len(self._terms)

    def by_count(self) -> list[Term]:
        """Terms ordered by descending document count, then by slug."""
        return sorted(self._terms.values(), key=lambda t: (-t.count, t.slug))

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"Taxonomy({self.name!r}, {len(self._terms)} terms)"
