# dag.py
from __future__ import annotations

from collections import deque
from typing import Dict, List, Set, Tuple

from .errors import WorkflowError
from .model import Job


def build_dag(jobs: List[Job]) -> Tuple[Dict[str, Set[str]], Dict[str, int]]:
    """
    Build a DAG from Job objects.

    Requires:
      - job.name: str (unique)
      - job.needs: iterable[str] (names of jobs that must run BEFORE this job)
    """
    names = [j.name for j in jobs]
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if names.count(n) > 1})
        raise WorkflowError(f"Duplicate job names found: {dupes}")

    name_set = set(names)
    adj: Dict[str, Set[str]] = {n: set() for n in names}
    indeg: Dict[str, int] = {n: 0 for n in names}

    for job in jobs:
        for need in job.needs or []:
            if need not in name_set:
                raise WorkflowError(
                    f"Job '{job.name}' needs missing job '{need}'. "
                    f"Known jobs: {sorted(name_set)}"
                )
            # Edge need -> job.name (need must run before job)
            if job.name not in adj[need]:
                adj[need].add(job.name)
                indeg[job.name] += 1

    return adj, indeg


def topo_order(jobs: List[Job]) -> List[Job]:
    """
    Sequential execution order honouring `needs`.

    Ties keep declaration order, so a workflow without `needs` runs its
    jobs top to bottom.
    """
    adj, indeg = build_dag(jobs)
    indeg = dict(indeg)
    position = {j.name: i for i, j in enumerate(jobs)}
    by_name = {j.name: j for j in jobs}

    q = deque(j.name for j in jobs if indeg[j.name] == 0)
    order: List[Job] = []

    while q:
        node = q.popleft()
        order.append(by_name[node])
        for child in sorted(adj[node], key=position.__getitem__):
            indeg[child] -= 1
            if indeg[child] == 0:
                q.append(child)

    if len(order) != len(jobs):
        remaining = sorted(n for n, d in indeg.items() if d > 0)
        raise WorkflowError(f"Job dependencies form a cycle. Stuck jobs: {remaining}")

    return order


def downstream_of(jobs: List[Job], name: str) -> Set[str]:
    """Every job that transitively needs `name`."""
    adj, _indeg = build_dag(jobs)
    seen: Set[str] = set()
    stack = list(adj.get(name, ()))
    while stack:
        node = stack.pop()
        if node in seen:
            continue
        seen.add(node)
        stack.extend(adj[node])
    return seen
