"""
gatewaychat - Search Context

Web search support for backends that cannot search by themselves:
- Parsing the search endpoint's result array
- Formatting results into a context block that callers prepend to the
  user's prompt

The HTTP call lives on ChatTransport.search().
"""

from typing import Any, Dict, List, Sequence, Union

from ..core.models import SearchResult


SEARCH_CONTEXT_HEADER = (
    "\n[System: The following search results were retrieved from the internet. "
    "Use them to answer the user's question.]\n\n"
)


def parse_search_results(body: Any) -> List[SearchResult]:
    """
    Convert a search endpoint body into SearchResult objects.

    Anything but a JSON array yields an empty list; non-object entries
    are skipped.
    """
    if not isinstance(body, list):
        return []
    return [SearchResult.from_dict(item) for item in body if isinstance(item, dict)]


def format_search_context(results: Sequence[Union[SearchResult, Dict[str, Any]]]) -> str:
    """
    Render search results as prompt context.

    Returns an empty string when there are no results.
    """
    if not results:
        return ""

    hits = [r if isinstance(r, SearchResult) else SearchResult.from_dict(r) for r in results]
    snippets = "\n---\n".join(
        f"Source {i}: {hit.title}\nURL: {hit.url}\nContent: {hit.content}\n"
        for i, hit in enumerate(hits, start=1)
    )
    return SEARCH_CONTEXT_HEADER + snippets + "\n\n"
