"""
Pipeline runner — a compiled nodnod graph.

    pipeline = Pipeline.compile(SummaryNode)
    summary = await pipeline(request, services)

The agent is built once; every call runs in a fresh scope.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, cast
from collections.abc import Callable, Coroutine

from nodnod import Scope, Value, EventLoopAgent, Node


type AgentRun = Callable[[Scope, dict[type[Any], Scope]], Coroutine[Any, Any, None]]


@dataclass(slots=True, frozen=True)
class Pipeline[T]:
    """
    Pre-compiled graph for a target node.

    Inputs are pushed into the scope keyed by their runtime type, so each
    input type may appear once per call. Exceptions raised by a node
    propagate out of the call; pending sibling nodes are cancelled.
    """

    _target: type[T]
    _agent: EventLoopAgent

    @classmethod
    def compile(cls, target: type[T]) -> Pipeline[T]:
        nodes: set[type[Node[Any, Any]]] = {cast(type[Node[Any, Any]], target)}
        return cls(_target=target, _agent=EventLoopAgent.build(nodes))

    async def __call__(self, *inputs: object) -> T:
        async with Scope(detail="pipeline") as scope:
            for value in inputs:
                scope.push(Value(type(value), value))

            await cast(AgentRun, getattr(self._agent, "run"))(scope, {})

            found = scope.get(self._target)
            if found is None:
                raise LookupError(f"{self._target.__name__} was not produced by the pipeline")
            return cast(T, found.value)


__all__ = ("Pipeline",)
