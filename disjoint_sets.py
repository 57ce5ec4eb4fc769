from typing import List


class ElementRangeError(IndexError):
    def __init__(self, element: int) -> None:
        super().__init__(f"element index is out of range: {element}")
        self.element = element


class NotARootError(ValueError):
    def __init__(self, element: int) -> None:
        super().__init__(f"at least one element is not root: {element}")
        self.element = element


class DisjointSets:
    """Union-find over the fixed universe 0..size-1.

    parents[e] >= 0 points at e's parent. A root stores -1 - rank, so every
    element starts as a rank-0 singleton with parents[e] == -1.
    """

    def __init__(self, size: int) -> None:
        self.parents: List[int] = [-1] * size

    @property
    def size(self) -> int:
        return len(self.parents)

    def copy(self) -> "DisjointSets":
        other = DisjointSets(0)
        other.parents = self.parents[:]
        return other

    def is_root(self, e: int) -> bool:
        self._check_range(e)
        return self.parents[e] < 0

    def rank(self, root: int) -> int:
        if not self.is_root(root):
            raise NotARootError(root)
        return -self.parents[root] - 1

    def find_set(self, e: int) -> int:
        self._check_range(e)

        root = e
        while self.parents[root] >= 0:
            root = self.parents[root]

        # path compression: re-point every visited node at the root
        while self.parents[e] >= 0:
            parent = self.parents[e]
            self.parents[e] = root
            e = parent

        return root

    def union_sets(self, e1: int, e2: int) -> None:
        self.link_sets(self.find_set(e1), self.find_set(e2))

    def link_sets(self, root1: int, root2: int) -> None:
        """Merge two sets given their roots (union by rank)."""
        self._check_range(root1)
        self._check_range(root2)
        for root in (root1, root2):
            if self.parents[root] >= 0:
                raise NotARootError(root)

        if root1 == root2:
            return

        rank1 = -self.parents[root1] - 1
        rank2 = -self.parents[root2] - 1
        if rank1 < rank2:
            self.parents[root1] = root2
        elif rank2 < rank1:
            self.parents[root2] = root1
        else:
            self.parents[root1] = root2
            self.parents[root2] -= 1

    def same_set(self, e1: int, e2: int) -> bool:
        return self.find_set(e1) == self.find_set(e2)

    def _check_range(self, e: int) -> None:
        if e < 0 or e >= len(self.parents):
            raise ElementRangeError(e)
