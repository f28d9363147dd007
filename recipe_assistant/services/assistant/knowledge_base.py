"""
Knowledge Base - static substitution and technique lookups.

The tables are loaded once from JSON (the bundled data file unless a
path is configured) and never change afterwards, so a single instance is
shared freely between sessions without locking.

Lookups never raise. A miss returns None and the engine turns that into
an "I don't know that one" reply. Matching is tried in this order:

1. exact key (case- and accent-insensitive)
2. singular/plural and verb-form normalization ("egg" finds "eggs",
   "deglazing" finds "deglaze")
3. a stored key inside the query ("out of heavy cream" finds
   "heavy cream"); the longest key wins
4. the query inside a stored key ("cream" finds "sour cream"); the first
   key in stored order wins
"""

import json
import logging
import os
import re
import unicodedata
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, Optional, TypeVar

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_DATA_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "data",
    "knowledge_base.json",
)

_FILLER_WORDS = {"a", "an", "the", "some", "any", "my", "of"}

T = TypeVar("T")


@dataclass(frozen=True)
class Substitution:
    """One substitute for an ingredient."""
    name: str
    ratio: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class TechniqueInfo:
    """Definition of a cooking term plus an optional usage tip."""
    term: str
    definition: str
    example: Optional[str] = None


# ============================================
# File schema
# ============================================

class SubstitutionEntry(BaseModel):
    name: str
    ratio: Optional[str] = None
    notes: Optional[str] = None


class TechniqueEntry(BaseModel):
    definition: str
    example: Optional[str] = None


class KnowledgeBaseFile(BaseModel):
    """Shape of the knowledge base JSON file."""
    substitutions: dict[str, list[SubstitutionEntry]] = Field(default_factory=dict)
    techniques: dict[str, TechniqueEntry] = Field(default_factory=dict)


# ============================================
# Name normalization
# ============================================

def normalize(text: str) -> str:
    """Lowercase, strip accents and punctuation, drop filler words."""
    decomposed = unicodedata.normalize("NFKD", text)
    plain = "".join(c for c in decomposed if not unicodedata.combining(c))
    plain = re.sub(r"[^a-z0-9\s-]", " ", plain.lower())
    words = [w for w in plain.split() if w not in _FILLER_WORDS]
    return " ".join(words)


def singularize_word(word: str) -> str:
    if len(word) > 3 and word.endswith("ies"):
        return word[:-3] + "y"
    if len(word) > 3 and word.endswith("oes"):
        return word[:-2]
    if len(word) > 4 and word.endswith(("ches", "shes", "sses", "xes")):
        return word[:-2]
    if len(word) > 2 and word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def singularize(text: str) -> str:
    return " ".join(singularize_word(w) for w in text.split())


def stem(text: str) -> str:
    """Loose verb-form stem so "deglazing" and "deglaze" meet at "deglaz"."""
    words = []
    for word in singularize(text).split():
        word = re.sub(r"(?:ing|ed)$", "", word) if len(word) > 4 else word
        word = word[:-1] if len(word) > 3 and word.endswith("e") else word
        words.append(word)
    return " ".join(words)


def _contains_phrase(haystack: str, needle: str) -> bool:
    return bool(needle) and re.search(rf"\b{re.escape(needle)}\b", haystack) is not None


class KnowledgeBase:
    """Read-only substitution and technique tables."""

    def __init__(
        self,
        substitutions: Mapping[str, list[Substitution]],
        techniques: Mapping[str, TechniqueInfo],
    ):
        self._substitutions = MappingProxyType(
            {normalize(k): tuple(v) for k, v in substitutions.items()}
        )
        self._techniques = MappingProxyType(
            {normalize(k): v for k, v in techniques.items()}
        )

    @classmethod
    def from_file(cls, path: str) -> "KnowledgeBase":
        """Load tables from a JSON file. Raises on a missing or invalid file."""
        with open(path, encoding="utf-8") as f:
            data = KnowledgeBaseFile.model_validate(json.load(f))

        substitutions = {
            ingredient: [Substitution(e.name, e.ratio, e.notes) for e in entries]
            for ingredient, entries in data.substitutions.items()
        }
        techniques = {
            term: TechniqueInfo(term=term, definition=e.definition, example=e.example)
            for term, e in data.techniques.items()
        }
        logger.info(
            f"Loaded knowledge base from {path}: "
            f"{len(substitutions)} substitutions, {len(techniques)} techniques"
        )
        return cls(substitutions, techniques)

    @property
    def ingredients(self) -> list[str]:
        return list(self._substitutions)

    @property
    def terms(self) -> list[str]:
        return list(self._techniques)

    def lookup_substitution(self, ingredient: str) -> Optional[list[Substitution]]:
        """Substitutes for an ingredient in stored order, or None."""
        match = self._find(self._substitutions, ingredient)
        return list(match) if match is not None else None

    def lookup_technique(self, term: str) -> Optional[TechniqueInfo]:
        """Definition of a cooking term, or None."""
        return self._find(self._techniques, term)

    def find_term_in(self, text: str) -> Optional[str]:
        """First known technique term mentioned in a piece of text."""
        plain = normalize(text)
        for term in self._techniques:
            if _contains_phrase(plain, term):
                return term
        return None

    @staticmethod
    def _find(table: Mapping[str, T], query: str) -> Optional[T]:
        key = normalize(query or "")
        if not key:
            return None

        if key in table:
            return table[key]

        singular = singularize(key)
        for stored, value in table.items():
            if singularize(stored) == singular:
                return value

        stemmed = stem(key)
        for stored, value in table.items():
            if stem(stored) == stemmed:
                return value

        # Stored key mentioned inside the query - prefer the most specific
        contained = [
            stored for stored in table
            if _contains_phrase(singular, singularize(stored))
        ]
        if contained:
            return table[max(contained, key=len)]

        for stored, value in table.items():
            if _contains_phrase(singularize(stored), singular):
                return value

        return None


@lru_cache
def get_knowledge_base(path: str = "") -> KnowledgeBase:
    """Shared knowledge base, loaded on first use."""
    return KnowledgeBase.from_file(path or DEFAULT_DATA_PATH)
