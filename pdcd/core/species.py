"""
Point-defect species and cluster compositions.
"""

import re
from enum import Enum
from typing import Dict, Iterator, List, Mapping, Tuple, Union


class Species(Enum):
    """Point-defect species.

    The declaration order is the canonical order used for composition keys and labels.
    """

    HE = "He"
    V = "V"
    I = "I"  # noqa: E741
    XE = "Xe"

    @classmethod
    def from_symbol(cls, symbol: Union[str, "Species"]) -> "Species":
        """Get a species from its symbol (case sensitive, e.g. 'He')."""
        if isinstance(symbol, Species):
            return symbol
        for species in cls:
            if species.value == symbol:
                return species
        raise ValueError(f"Unknown species {symbol}. Available species: {[s.value for s in cls]}")

    def __str__(self) -> str:
        return self.value


SPECIES_ORDER: Tuple[Species, ...] = tuple(Species)
_LABEL_PATTERN = re.compile(r"([A-Z][a-z]?)(\d+)")


class Composition:
    """Immutable mapping species -> count with a canonical, order-independent key."""

    __slots__ = ("_counts",)

    def __init__(self, counts: Mapping[Union[str, Species], int] = None, **kwargs: int):
        values = [0] * len(SPECIES_ORDER)
        items = list((counts or {}).items()) + list(kwargs.items())
        for symbol, count in items:
            species = Species.from_symbol(symbol)
            count = int(count)
            if count < 0:
                raise ValueError(f"Negative count {count} for species {species}")
            values[SPECIES_ORDER.index(species)] += count
        self._counts: Tuple[int, ...] = tuple(values)

    @classmethod
    def from_key(cls, key: Tuple[int, ...]) -> "Composition":
        """Build a composition from a canonical key."""
        if len(key) != len(SPECIES_ORDER):
            raise ValueError(f"Composition key must have {len(SPECIES_ORDER)} entries, got {key}")
        return cls({species: count for species, count in zip(SPECIES_ORDER, key)})

    @classmethod
    def from_label(cls, label: str) -> "Composition":
        """Parse a label such as 'He2V3'."""
        matches = _LABEL_PATTERN.findall(label)
        if not matches or "".join(f"{s}{n}" for s, n in matches) != label:
            raise ValueError(f"Invalid composition label: {label}")
        return cls({symbol: int(count) for symbol, count in matches})

    @property
    def key(self) -> Tuple[int, ...]:
        """Canonical key (counts in canonical species order)."""
        return self._counts

    @property
    def size(self) -> int:
        """Total number of point defects/atoms in the cluster."""
        return sum(self._counts)

    @property
    def shape(self) -> str:
        """Species present in canonical order, e.g. 'HeV' for mixed helium-vacancy."""
        return "".join(s.value for s, n in zip(SPECIES_ORDER, self._counts) if n > 0)

    @property
    def label(self) -> str:
        return "".join(f"{s.value}{n}" for s, n in zip(SPECIES_ORDER, self._counts) if n > 0)

    def __getitem__(self, species: Union[str, Species]) -> int:
        return self._counts[SPECIES_ORDER.index(Species.from_symbol(species))]

    def get(self, species: Union[str, Species], default: int = 0) -> int:
        count = self[species]
        return count if count else default

    def species(self) -> List[Species]:
        """Species with a non-zero count."""
        return [s for s, n in zip(SPECIES_ORDER, self._counts) if n > 0]

    def items(self) -> Iterator[Tuple[Species, int]]:
        return ((s, n) for s, n in zip(SPECIES_ORDER, self._counts) if n > 0)

    def as_dict(self) -> Dict[str, int]:
        """Canonical mapping symbol -> count including zero entries."""
        return {s.value: n for s, n in zip(SPECIES_ORDER, self._counts)}

    def is_single_species(self) -> bool:
        return len(self.species()) == 1

    def __add__(self, other: "Composition") -> "Composition":
        return Composition.from_key(tuple(a + b for a, b in zip(self._counts, other._counts)))

    def __sub__(self, other: "Composition") -> "Composition":
        # raises on negative counts
        return Composition.from_key(tuple(a - b for a, b in zip(self._counts, other._counts)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Composition):
            return NotImplemented
        return self._counts == other._counts

    def __lt__(self, other: "Composition") -> bool:
        # earlier species first within a size
        return (self.size, tuple(-n for n in self._counts)) < (other.size, tuple(-n for n in other._counts))

    def __hash__(self) -> int:
        return hash(self._counts)

    def __str__(self) -> str:
        return self.label

    def __repr__(self) -> str:
        return f"Composition('{self.label}')"
