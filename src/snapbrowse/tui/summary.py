from __future__ import annotations

from typing import Dict, Optional, TYPE_CHECKING

from ..ls import Summary

if TYPE_CHECKING:
    from ..progress import Progress
    from ..repository import Repository


class SummaryMap:
    """Cache of per-subtree aggregates, keyed by tree id.

    Filled only by :meth:`compute`; entries never expire. The map is handed
    from screen to screen so a summary is computed at most once per session.
    """

    def __init__(self) -> None:
        self._summaries: Dict[str, Summary] = {}

    def get(self, tree_id: str) -> Optional[Summary]:
        return self._summaries.get(tree_id)

    def __contains__(self, tree_id: object) -> bool:
        return tree_id in self._summaries

    def __len__(self) -> int:
        return len(self._summaries)

    def compute(self, repo: "Repository", tree_id: str, progress: "Progress") -> Summary:
        """Aggregate the subtree at ``tree_id``, caching every directory visited.

        Already cached subtrees are reused without being fetched again. A fetch
        error stops the traversal; subtrees completed before it stay cached.
        """
        cached = self._summaries.get(tree_id)
        if cached is not None:
            return cached

        summary = Summary()
        for node in repo.get_tree(tree_id).nodes:
            progress.inc()
            if node.is_dir() and node.subtree:
                summary += self.compute(repo, node.subtree, progress)
            summary.update(node)
        self._summaries[tree_id] = summary
        return summary
