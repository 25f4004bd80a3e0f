"""
Account hierarchy -- immutable forest built from a flat account list.

Responsibility:
    Assembles the chart of accounts into a forest keyed by
    ``parent_account_id``.  Every node carries its depth (``level``, roots
    are 0) and its children sorted by ``code``.  The forest supplies the
    traversal orders the aggregator and the reports rely on: display
    (pre-order) and bottom-up (post-order).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Leaf dependency of the aggregator, the reports and the statements.

Invariants enforced:
    - The parent graph is acyclic.  A parent chain that revisits an
      ancestor is reported as AccountCycleError, never silently dropped.
    - Every parent reference resolves to an account in the input.
    - Sibling order is lexicographic by code and stable for equal codes
      (input order decides).
    - No mutable UI state (expanded/collapsed flags) lives on the forest.

Failure modes:
    - AccountCycleError when a parent chain loops.
    - AccountNotFoundError when a parent_account_id is not in the input.
    - ValueError on duplicate account ids.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping
from uuid import UUID

from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.exceptions import AccountCycleError, AccountNotFoundError


@dataclass(frozen=True)
class AccountNode:
    """One account in the forest with its depth and ordered child ids."""

    account: AccountInfo
    level: int
    children: tuple[UUID, ...] = ()

    @property
    def id(self) -> UUID:
        return self.account.id

    @property
    def has_children(self) -> bool:
        return bool(self.children)


class AccountForest:
    """
    Read-only forest of accounts.

    Contract:
        Built only by build_account_forest(), which has already proven the
        parent graph acyclic and closed.  Every traversal is iterative, so
        depth is bounded by memory rather than the recursion limit.
    """

    def __init__(self, nodes: Mapping[UUID, AccountNode], roots: tuple[UUID, ...]):
        self._nodes = MappingProxyType(dict(nodes))
        self._roots = roots

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._nodes

    def __iter__(self) -> Iterator[AccountNode]:
        return self.pre_order()

    @property
    def root_ids(self) -> tuple[UUID, ...]:
        return self._roots

    @property
    def roots(self) -> tuple[AccountNode, ...]:
        return tuple(self._nodes[r] for r in self._roots)

    def node(self, account_id: UUID) -> AccountNode:
        try:
            return self._nodes[account_id]
        except KeyError:
            raise AccountNotFoundError(str(account_id)) from None

    def account(self, account_id: UUID) -> AccountInfo:
        return self.node(account_id).account

    def children(self, account_id: UUID) -> tuple[AccountNode, ...]:
        return tuple(self._nodes[c] for c in self.node(account_id).children)

    def has_children(self, account_id: UUID) -> bool:
        return self.node(account_id).has_children

    def descendants(self, account_id: UUID) -> tuple[UUID, ...]:
        """All descendant ids in display order, excluding the account itself."""
        return tuple(n.id for n in self.pre_order(account_id))[1:]

    def subtree_ids(self, account_id: UUID) -> frozenset[UUID]:
        """The account and all of its descendants."""
        return frozenset(n.id for n in self.pre_order(account_id))

    def ancestors(self, account_id: UUID) -> tuple[UUID, ...]:
        """Ancestor ids ordered root first, excluding the account itself."""
        chain: list[UUID] = []
        parent = self.node(account_id).account.parent_account_id
        while parent is not None:
            chain.append(parent)
            parent = self._nodes[parent].account.parent_account_id
        chain.reverse()
        return tuple(chain)

    def path(self, account_id: UUID, separator: str = " > ") -> str:
        """Human-readable path, e.g. ``Assets > Current Assets > Cash``."""
        names = [self._nodes[a].account.name for a in self.ancestors(account_id)]
        names.append(self.node(account_id).account.name)
        return separator.join(names)

    def pre_order(self, start: UUID | None = None) -> Iterator[AccountNode]:
        """Depth-first, parents before children, siblings by code."""
        stack = [start] if start is not None else list(reversed(self._roots))
        if start is not None:
            self.node(start)
        while stack:
            node = self._nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def post_order(self, start: UUID | None = None) -> Iterator[AccountNode]:
        """Every node is yielded after all of its descendants."""
        if start is not None:
            self.node(start)
        stack: list[tuple[UUID, bool]] = (
            [(start, False)] if start is not None
            else [(r, False) for r in reversed(self._roots)]
        )
        while stack:
            account_id, expanded = stack.pop()
            node = self._nodes[account_id]
            if expanded:
                yield node
                continue
            stack.append((account_id, True))
            stack.extend((c, False) for c in reversed(node.children))


def _sort_key(account: AccountInfo) -> str:
    return account.code


def _detect_cycles(accounts: Mapping[UUID, AccountInfo]) -> None:
    # 0 = unvisited, 1 = on the current parent chain, 2 = proven acyclic
    state: dict[UUID, int] = {}
    for start in accounts:
        if state.get(start):
            continue
        chain: list[UUID] = []
        current: UUID | None = start
        while current is not None and not state.get(current):
            state[current] = 1
            chain.append(current)
            current = accounts[current].parent_account_id
        if current is not None and state[current] == 1:
            loop = chain[chain.index(current):]
            raise AccountCycleError(
                account_id=str(current),
                cycle=[accounts[a].code for a in loop] + [accounts[current].code],
            )
        for account_id in chain:
            state[account_id] = 2


def build_account_forest(accounts: Iterable[AccountInfo]) -> AccountForest:
    """
    Build the immutable account forest.

    Preconditions:
        ``accounts`` is the complete chart (every referenced parent present).

    Raises:
        AccountNotFoundError: A parent_account_id does not resolve.
        AccountCycleError: A parent chain revisits an ancestor.
    """
    by_id: dict[UUID, AccountInfo] = {}
    for account in accounts:
        if account.id in by_id:
            raise ValueError(f"Duplicate account id {account.id}")
        by_id[account.id] = account

    children: dict[UUID, list[AccountInfo]] = {a: [] for a in by_id}
    roots: list[AccountInfo] = []
    for account in by_id.values():
        parent_id = account.parent_account_id
        if parent_id is None:
            roots.append(account)
        elif parent_id not in by_id:
            raise AccountNotFoundError(str(parent_id))
        else:
            children[parent_id].append(account)

    _detect_cycles(by_id)

    sorted_children = {
        parent: tuple(a.id for a in sorted(kids, key=_sort_key))
        for parent, kids in children.items()
    }
    root_ids = tuple(a.id for a in sorted(roots, key=_sort_key))

    nodes: dict[UUID, AccountNode] = {}
    stack: list[tuple[UUID, int]] = [(r, 0) for r in root_ids]
    while stack:
        account_id, level = stack.pop()
        nodes[account_id] = AccountNode(
            account=by_id[account_id],
            level=level,
            children=sorted_children[account_id],
        )
        stack.extend((c, level + 1) for c in sorted_children[account_id])

    return AccountForest(nodes, root_ids)


def find_reparent_cycle(
    parent_by_id: Mapping[UUID, UUID | None],
    account_id: UUID,
    new_parent_id: UUID | None,
) -> list[UUID] | None:
    """
    Return the cycle that moving ``account_id`` under ``new_parent_id``
    would create, or None if the move is safe.

    ``parent_by_id`` is the current parent map of the whole chart.
    """
    if new_parent_id is None:
        return None
    chain = [account_id]
    current: UUID | None = new_parent_id
    seen: set[UUID] = set()
    while current is not None:
        chain.append(current)
        if current == account_id:
            return chain
        if current in seen:
            # Pre-existing cycle above the new parent; report it as-is.
            return chain
        seen.add(current)
        current = parent_by_id.get(current)
    return None
