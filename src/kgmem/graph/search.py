"""
Search Engine - Ranked keyword search over the knowledge graph.

Scoring is additive: every tier that fires adds its points.
1. A query token equals the entity name              +100
2. The entity name is a word of the query            +90
3. Each 3+ char token inside the name                +70 at the start, +50 elsewhere
4. Any token inside the name                         +40
5. Any token inside the entity type                  +20
6. Any token inside an observation                   +10
7. The whole query inside name, type or observation  +1

Selection:
- Two or more entities at 90+ → only the top 5 of those.
- Otherwise everything above 0, or at 20+ when the query has a token
  shorter than 3 characters, best first.

The result carries every relation touching a matched entity, in either direction.
The search is deterministic - same graph and query always give the same result.
"""

import re
from dataclasses import dataclass, field

from kgmem.core.config import get_logger
from kgmem.core.types import Entity, KnowledgeGraph, Relation

logger = get_logger("graph.search")

_TOKEN_JUNK = re.compile(r"[^\w.-]")


def tokenize(query: str) -> list[str]:
    """Lowercase, split on whitespace, keep only word chars, '.' and '-'."""
    tokens = (_TOKEN_JUNK.sub("", token) for token in query.strip().lower().split())
    return [token for token in tokens if token]


def connected_relations(names: set[str], relations: list[Relation]) -> list[Relation]:
    """Relations where either endpoint is in ``names``."""
    return [r for r in relations if r.from_ in names or r.to in names]


@dataclass
class ScoredEntity:
    """An entity with its search score."""

    entity: Entity

    score: int = 0
    """Sum of the points of every tier that fired."""

    match_details: list[str] = field(default_factory=list)
    """Tier labels, in the order they fired."""

    def add(self, points: int, detail: str) -> None:
        self.score += points
        self.match_details.append(detail)


class SearchEngine:
    """
    Tokenize, score, rank and select entities for a free-text query.

    Pure: works on a KnowledgeGraph value and never touches storage.
    """

    # Tier weights
    EXACT_NAME_SCORE = 100
    NAME_IN_QUERY_SCORE = 90
    TOKEN_AT_START_SCORE = 70
    TOKEN_IN_NAME_SCORE = 50
    SUBSTRING_IN_NAME_SCORE = 40
    TYPE_MATCH_SCORE = 20
    OBSERVATION_MATCH_SCORE = 10
    LEGACY_MATCH_SCORE = 1

    # Selection
    MIN_TOKEN_LENGTH = 3
    HIGH_CONFIDENCE_SCORE = 90
    HIGH_CONFIDENCE_LIMIT = 5
    SHORT_TOKEN_MIN_SCORE = 20

    def score(self, graph: KnowledgeGraph, query: str) -> list[ScoredEntity]:
        """Score every entity in graph order. Blank queries score nothing."""
        if not query or not query.strip():
            return []

        tokens = tokenize(query)
        raw = query.lower()
        query_words = raw.split()
        return [self._score_entity(entity, tokens, raw, query_words) for entity in graph.entities]

    def rank(self, scored: list[ScoredEntity], tokens: list[str]) -> list[ScoredEntity]:
        """Apply the high-confidence cut or the score threshold, best first."""
        high_confidence = sorted(
            (s for s in scored if s.score >= self.HIGH_CONFIDENCE_SCORE),
            key=lambda s: s.score,
            reverse=True,
        )
        if len(high_confidence) >= 2:
            return high_confidence[: self.HIGH_CONFIDENCE_LIMIT]

        has_short_tokens = any(len(token) < self.MIN_TOKEN_LENGTH for token in tokens)
        if has_short_tokens:
            kept = (s for s in scored if s.score >= self.SHORT_TOKEN_MIN_SCORE)
        else:
            kept = (s for s in scored if s.score > 0)
        return sorted(kept, key=lambda s: s.score, reverse=True)

    def search(self, graph: KnowledgeGraph, query: str) -> KnowledgeGraph:
        """Return the matched entities, in ranked order, with their connected relations."""
        scored = self.score(graph, query)
        if not scored:
            return KnowledgeGraph()

        ranked = self.rank(scored, tokenize(query))
        if not ranked:
            logger.debug(f"No entities matched {query!r}")
            return KnowledgeGraph()

        for s in ranked:
            logger.debug(f"  {s.entity.name} ({s.entity.entity_type}) score={s.score} {s.match_details}")

        entities = [s.entity for s in ranked]
        relations = connected_relations({e.name for e in entities}, graph.relations)
        logger.debug(f"Query {query!r} matched {len(entities)} entities, {len(relations)} relations")

        return KnowledgeGraph(entities=entities, relations=relations)

    def _score_entity(
        self,
        entity: Entity,
        tokens: list[str],
        raw: str,
        query_words: list[str],
    ) -> ScoredEntity:
        name = entity.name.lower()
        entity_type = entity.entity_type.lower()
        observations = [o.lower() for o in entity.observations]
        result = ScoredEntity(entity=entity)

        if any(token == name for token in tokens):
            result.add(self.EXACT_NAME_SCORE, "exact_name_match")

        # Handles queries like "Plan modern_widget.dart"
        if name in query_words:
            result.add(self.NAME_IN_QUERY_SCORE, "name_as_token_in_query")

        for token in tokens:
            if len(token) >= self.MIN_TOKEN_LENGTH and token in name:
                if name.startswith(token):
                    result.add(self.TOKEN_AT_START_SCORE, "token_at_start_of_name")
                else:
                    result.add(self.TOKEN_IN_NAME_SCORE, "token_in_name")

        if any(token in name for token in tokens):
            result.add(self.SUBSTRING_IN_NAME_SCORE, "substring_in_name")

        if any(token in entity_type for token in tokens):
            result.add(self.TYPE_MATCH_SCORE, "match_on_type")

        if any(token in obs for token in tokens for obs in observations):
            result.add(self.OBSERVATION_MATCH_SCORE, "match_in_observations")

        if raw in name or raw in entity_type or any(raw in obs for obs in observations):
            result.add(self.LEGACY_MATCH_SCORE, "legacy_substring_match")

        return result


_engine = SearchEngine()


def search_graph(graph: KnowledgeGraph, query: str) -> KnowledgeGraph:
    """Search ``graph`` with the default engine."""
    return _engine.search(graph, query)
