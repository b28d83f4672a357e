"""Scoring-function selection keyed by the requested sort mode.

Every sort mode maps to one primary ``field_value_factor`` function and a
boost mode. Modes other than ``recent`` also get two low-weight tie breakers
(comment activity and recency); ``recent`` replaces the relevance score
entirely, so lexical matching only decides *which* items qualify.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class SortMode(str, Enum):
    hot = "hot"
    comments = "comments"
    sats = "sats"
    recent = "recent"

    @classmethod
    def parse(cls, value: "SortMode | str | None") -> "SortMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.hot


class Modifier(str, Enum):
    none = "none"
    log1p = "log1p"
    ln1p = "ln1p"
    square = "square"


class BoostMode(str, Enum):
    multiply = "multiply"
    replace = "replace"


@dataclass(frozen=True)
class RankingFunction:
    field: str
    modifier: Modifier = Modifier.none
    factor: float = 1
    missing: Optional[float] = None

    def to_dsl(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "field": self.field,
            "modifier": self.modifier.value,
            "factor": self.factor,
        }
        if self.missing is not None:
            body["missing"] = self.missing
        return {"field_value_factor": body}


@dataclass(frozen=True)
class RankingStrategy:
    functions: Tuple[RankingFunction, ...]
    boost_mode: BoostMode

    @property
    def primary(self) -> RankingFunction:
        return self.functions[0]

    def functions_dsl(self) -> List[Dict[str, Any]]:
        return [fn.to_dsl() for fn in self.functions]


PRIMARY_FACTOR = 1.2

# small bias toward items with comments, then toward newer items
TIE_BREAKERS: Tuple[RankingFunction, ...] = (
    RankingFunction("ncomments", Modifier.ln1p, 1),
    RankingFunction("createdAt", Modifier.log1p, 1),
)

_PRIMARY: Dict[SortMode, Tuple[RankingFunction, BoostMode]] = {
    SortMode.hot: (RankingFunction("wvotes", Modifier.none, PRIMARY_FACTOR), BoostMode.multiply),
    SortMode.comments: (RankingFunction("ncomments", Modifier.square, PRIMARY_FACTOR), BoostMode.multiply),
    SortMode.sats: (RankingFunction("sats", Modifier.none, PRIMARY_FACTOR), BoostMode.multiply),
    SortMode.recent: (RankingFunction("createdAt", Modifier.square, PRIMARY_FACTOR), BoostMode.replace),
}


def ranking_for(sort: SortMode | str | None) -> RankingStrategy:
    mode = SortMode.parse(sort)
    primary, boost_mode = _PRIMARY[mode]
    functions: Tuple[RankingFunction, ...] = (primary,)
    if mode is not SortMode.recent:
        functions += TIE_BREAKERS
    return RankingStrategy(functions=functions, boost_mode=boost_mode)


# "related" ranks purely by weighted votes, scaled into the similarity score.
RELATED_RANKING = RankingStrategy(
    functions=(RankingFunction("wvotes", Modifier.none, 1, missing=0),),
    boost_mode=BoostMode.multiply,
)
