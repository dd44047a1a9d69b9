"""
Named tasks, their dependencies, and the order they run in.
"""
from __future__ import annotations

import concurrent.futures
import typing as t
from dataclasses import dataclass, field

from .pretty_utils import log

if t.TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from .core import Context


TaskFunc = t.Callable[['Context'], None]


@dataclass
class Task:
    name: str
    func: TaskFunc | None = None
    deps: list[str] = field(default_factory=list)


def topo_sort(nodes: Iterable[str], edges: Iterable[tuple[str, str]]) -> list[str]:
    """
    Order @nodes so that for every (u, v) in @edges, u comes before v.
    Raises ValueError for unknown nodes or cycles.
    """
    nodes = list(nodes)
    incoming: dict[str, set[str]] = {n: set() for n in nodes}
    outgoing: dict[str, set[str]] = {n: set() for n in nodes}
    for u, v in edges:
        if u not in incoming or v not in incoming:
            raise ValueError(f'Edge references unknown task: {(u, v)}')
        outgoing[u].add(v)
        incoming[v].add(u)
    ordered: list[str] = []
    roots = [n for n in nodes if not incoming[n]]
    while roots:
        n = roots.pop()
        ordered.append(n)
        for m in list(outgoing[n]):
            incoming[m].discard(n)
            outgoing[n].discard(m)
            if not incoming[m]:
                roots.append(m)
    if any(incoming[n] for n in nodes):
        raise ValueError('Cycle detected in task dependencies')
    return ordered


class TaskRunner:
    """
    Registry and runner for named tasks. A task's dependencies run as one
    parallel set that must finish completely before the task itself starts.
    """
    def __init__(self, context: Context, max_workers: int | None = None):
        self.context = context
        self.max_workers = max_workers
        self.tasks: dict[str, Task] = {}

    def add(self, name: str, func: TaskFunc | None = None, deps: Iterable[str] = ()):
        """
        Register (or replace) a task. A task without @func only runs its deps.
        """
        self.tasks[name] = Task(name, func, list(deps))

    def task(self, name: str, deps: Iterable[str] = ()):
        """
        Decorator form of `add()`.
        """
        def register(func: TaskFunc):
            self.add(name, func, deps)
            return func
        return register

    def names(self):
        return list(self.tasks)

    def validate(self):
        """
        Ensure every dependency names a known task and that there are no
        cycles.
        """
        edges = [(dep, task.name) for task in self.tasks.values() for dep in task.deps]
        return topo_sort(self.tasks, edges)

    def run(self, name: str):
        """
        Run a task by name: first its deps as a parallel set, then its own
        function. Raises KeyError for unknown names.
        """
        task = self.tasks[name]
        if task.deps:
            self.run_parallel(task.deps)
        if task.func:
            log(f'[{name}]', 'Starting', style='cyan')
            task.func(self.context)
            log(f'[{name}]', 'Finished', style='cyan')

    def run_parallel(self, names: Iterable[str]):
        """
        Run every named task concurrently and wait for all of them. If any
        failed, the first failure in declaration order is re-raised once the
        whole set has finished.
        """
        names = list(names)
        for name in names:
            if name not in self.tasks:
                raise KeyError(name)
        if not names:
            return
        if len(names) == 1:
            self.run(names[0])
            return

        with concurrent.futures.ThreadPoolExecutor(self.max_workers or len(names)) as executor:
            futures = [executor.submit(self.run, name) for name in names]
            concurrent.futures.wait(futures)
        for future in futures:
            if error := future.exception():
                raise error

    def run_sequence(self, *groups: str | list[str]):
        """
        Run @groups one after another. A group is either a single task name or
        a list of names run as a parallel set.
        """
        for group in groups:
            if isinstance(group, str):
                self.run(group)
            else:
                self.run_parallel(group)

    def sequence(self, *groups: str | list[str]) -> Callable[[Context], None]:
        """
        Build a task function that runs `run_sequence(*groups)`.
        """
        def run_groups(context: Context):
            self.run_sequence(*groups)
        return run_groups
