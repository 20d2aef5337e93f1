"""Filter, sorting and index analysis for CRUD-style queries."""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ..models.enums import DatabaseType, QueryComplexity
from ..models.reports import ComplexityAnalysis, IndexSuggestion
from ..pool.profiles import get_profile
from .query_stats import QueryLogEntry

TEXT_SEARCH_OPERATORS = frozenset({"contains", "containss", "startswith", "endswith"})
LARGE_IN_LIST = 100
INDEX_SUGGESTION_THRESHOLD = 5
SORT_FIELD_WEIGHT = 0.5

_COMPLEXITY_SCORES = {
    QueryComplexity.LOW: 1,
    QueryComplexity.MEDIUM: 2,
    QueryComplexity.HIGH: 3,
}


class QueryAnalyzer:
    """Static helpers analyzing filters and sorters."""

    @staticmethod
    def optimize_filters(
        filters: Sequence[Mapping[str, Any]] | None,
        database_type: DatabaseType | str = DatabaseType.POSTGRESQL,
    ) -> list[Mapping[str, Any]]:
        """Reorder filters so the cheapest operators are evaluated first.

        The sort is stable, so filters of equal priority keep their order.
        """
        if not filters:
            return []
        profile = get_profile(database_type)
        return sorted(filters, key=lambda f: profile.filter_rank(f.get("operator")))

    @staticmethod
    def optimize_sorting(
        sorting: Sequence[Mapping[str, Any]] | None,
    ) -> list[Mapping[str, Any]]:
        """Drop duplicate sort fields, keeping the last occurrence."""
        if not sorting:
            return []

        seen: set[str] = set()
        optimized: list[Mapping[str, Any]] = []
        for sorter in reversed(sorting):
            field_name = sorter.get("field")
            if field_name in seen:
                continue
            seen.add(field_name)
            optimized.append(sorter)
        optimized.reverse()
        return optimized

    @staticmethod
    def suggest_indexes(
        query_log: Iterable[QueryLogEntry],
        database_type: DatabaseType | str = DatabaseType.POSTGRESQL,
        threshold: float = INDEX_SUGGESTION_THRESHOLD,
    ) -> list[IndexSuggestion]:
        """Suggest indexes for fields used often in filters or sorting.

        Filter fields weigh 1 per use and sort fields 0.5.
        """
        profile = get_profile(database_type)
        frequency: dict[tuple[str, str], float] = {}

        for entry in query_log:
            for crud_filter in entry.filters or []:
                field_name = crud_filter.get("field")
                if field_name is None:
                    continue
                key = (entry.resource, field_name)
                frequency[key] = frequency.get(key, 0) + 1
            for sorter in entry.sorting or []:
                field_name = sorter.get("field")
                if field_name is None:
                    continue
                key = (entry.resource, field_name)
                frequency[key] = frequency.get(key, 0) + SORT_FIELD_WEIGHT

        return [
            IndexSuggestion(
                resource=resource,
                suggestion=profile.index_statement(resource, field_name),
                reason=f"Field '{field_name}' used in {round(count)} queries",
            )
            for (resource, field_name), count in frequency.items()
            if count >= threshold
        ]

    @staticmethod
    def analyze_query_complexity(
        filters: Sequence[Mapping[str, Any]] | None,
        sorting: Sequence[Mapping[str, Any]] | None,
    ) -> ComplexityAnalysis:
        """Score a filter/sort combination and suggest simplifications."""
        suggestions: list[str] = []
        score = 0

        for crud_filter in filters or []:
            score += 1
            operator = crud_filter.get("operator")
            field_name = crud_filter.get("field")
            value = crud_filter.get("value")

            if operator in TEXT_SEARCH_OPERATORS:
                score += 2
                suggestions.append(
                    f"Consider using full-text search for '{field_name}' "
                    f"instead of {operator}"
                )
            elif operator in ("in", "nin") and isinstance(value, (list, tuple)):
                if len(value) > LARGE_IN_LIST:
                    score += 3
                    suggestions.append(
                        f"Large IN clause for '{field_name}' ({len(value)} values) - "
                        "consider alternative approaches"
                    )

        if sorting and len(sorting) > 3:
            score += len(sorting)
            suggestions.append("Multiple sort fields detected - consider composite indexes")

        if score > 10:
            complexity = QueryComplexity.HIGH
        elif score > 5:
            complexity = QueryComplexity.MEDIUM
        else:
            complexity = QueryComplexity.LOW
        return ComplexityAnalysis(complexity=complexity, suggestions=suggestions)

    @classmethod
    def analyze_resources(
        cls, query_log: Iterable[QueryLogEntry]
    ) -> list[ComplexityAnalysis]:
        """Average complexity per resource over a query log."""
        by_resource: dict[str, list[ComplexityAnalysis]] = {}
        for entry in query_log:
            by_resource.setdefault(entry.resource, []).append(
                cls.analyze_query_complexity(entry.filters, entry.sorting)
            )

        analyses = []
        for resource, results in by_resource.items():
            average = sum(_COMPLEXITY_SCORES[r.complexity] for r in results) / len(results)
            if average > 2.5:
                complexity = QueryComplexity.HIGH
            elif average > 1.5:
                complexity = QueryComplexity.MEDIUM
            else:
                complexity = QueryComplexity.LOW

            suggestions = list(dict.fromkeys(s for r in results for s in r.suggestions))
            analyses.append(
                ComplexityAnalysis(
                    resource=resource, complexity=complexity, suggestions=suggestions
                )
            )
        return analyses
