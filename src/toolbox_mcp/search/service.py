"""Search services that resolve a query to block ids."""

import re
from typing import Optional, Union

import httpx


_WORD_SPLIT_RE = re.compile(r"[_\W]+")


class HttpSearchService:
    """External search service reached over HTTP.

    POSTs {"term": ..., "subset": {block id: label}} to `{base_url}/search`
    and expects a JSON list of block ids (or {"results": [...]}) back.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def search(self, term: str, subset: dict[str, Union[str, bool]]) -> list[str]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                f"{self.base_url}/search",
                json={"term": term, "subset": subset},
            )
            response.raise_for_status()
            data = response.json()

        if isinstance(data, dict):
            data = data.get("results", [])
        # Results outside the subset are not reachable in the current toolbox
        return [block_id for block_id in data if block_id in subset]


class LocalSearchService:
    """In-process weighted scorer over block ids, names and category labels."""

    def __init__(self, documents: Optional[dict[str, dict]] = None):
        """Initialize scorer.

        Args:
            documents: Block id -> {"name": ..., "description": ...} extra text
        """
        self.documents = documents or {}

    async def search(self, term: str, subset: dict[str, Union[str, bool]]) -> list[str]:
        query_lower = term.lower().strip()
        if not query_lower:
            return []
        query_words = set(query_lower.split())

        scored = []
        for position, (block_id, label) in enumerate(subset.items()):
            score = self._score_block(block_id, label, query_lower, query_words)
            if score > 0:
                scored.append((-score, position, block_id))

        scored.sort()
        return [block_id for _, _, block_id in scored]

    def _score_block(self, block_id: str, label: Union[str, bool], query_lower: str, query_words: set) -> int:
        """Calculate search score for a block."""
        score = 0
        doc = self.documents.get(block_id, {})

        # 1. Name match (highest weight)
        name_lower = (doc.get("name") or block_id).lower()
        if query_lower == name_lower:
            score += 20
        elif query_lower in name_lower:
            score += 10

        # 2. Block id word overlap
        id_words = set(_WORD_SPLIT_RE.split(block_id.lower()))
        for word in query_words:
            if word in id_words:
                score += 5
            elif word in name_lower:
                score += 3

        # 3. Category label
        if isinstance(label, str):
            label_lower = label.lower()
            if query_lower == label_lower:
                score += 4
            for word in query_words:
                if word in label_lower:
                    score += 1

        # 4. Description
        desc_lower = (doc.get("description") or "").lower()
        if query_lower in desc_lower:
            score += 5
        for word in query_words:
            if word in desc_lower:
                score += 1

        return score
