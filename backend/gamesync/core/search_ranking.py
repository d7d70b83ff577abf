"""Search Ranking — orders metadata search options for user presentation.

Invariants:
    - Case-insensitive duplicate names collapse to the first occurrence
    - Order: exact name match, then prefix match, then shorter names first
    - Ties keep a stable order (similarity, then original position)
    - At most `limit` results are returned
"""

from gamesync.core.game_names import similarity_score
from gamesync.core.records import MetadataSearchResult


def rank_search_results(
    results: list[MetadataSearchResult], query: str, limit: int = 50,
) -> list[MetadataSearchResult]:
    seen: set[str] = set()
    unique: list[MetadataSearchResult] = []
    for result in results:
        key = result.name.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(result)

    needle = query.strip().lower()

    def sort_key(item: tuple[int, MetadataSearchResult]):
        position, result = item
        name = result.name.strip().lower()
        if name == needle:
            tier = 0
        elif name.startswith(needle):
            tier = 1
        else:
            tier = 2
        return (tier, len(name), -similarity_score(query, result.name), position)

    ranked = sorted(enumerate(unique), key=sort_key)
    return [result for _, result in ranked[:limit]]
