from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .ranking import SortMode


TITLE_EMBEDDING = "title_embedding"
TEXT_EMBEDDING = "text_embedding"


@dataclass(frozen=True)
class HybridQueryComposer:
    """Wraps lexical clauses with neural (embedding) similarity clauses.

    Inactive when no model id is configured; the planner then keeps the
    pure lexical query.
    """

    model_id: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return bool(self.model_id)

    def applies_to(self, sort: SortMode) -> bool:
        # recency ordering only needs lexical filtering
        return self.enabled and sort is not SortMode.recent

    def neural_clause(self, field: str, query_text: str, k: int) -> Dict[str, Any]:
        return {
            "neural": {
                field: {
                    "query_text": query_text,
                    "model_id": self.model_id,
                    "k": k,
                }
            }
        }

    def neural_clauses(self, title_text: str, body_text: str, k: int) -> List[Dict[str, Any]]:
        """One clause per embedded field; ``k`` must cover ``offset + page size``."""
        return [
            self.neural_clause(TITLE_EMBEDDING, title_text, k),
            self.neural_clause(TEXT_EMBEDDING, body_text, k),
        ]

    def compose(self, term_queries: List[Dict[str, Any]], query_text: str, k: int) -> Dict[str, Any]:
        return {
            "hybrid": {
                "queries": [
                    {"bool": {"should": self.neural_clauses(query_text, query_text, k)}},
                    {"bool": {"should": term_queries}},
                ]
            }
        }
