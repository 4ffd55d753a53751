"""Execution branch - immutable, event-sourced pipeline state."""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Literal

from pipewise.kernel.result import Option

if TYPE_CHECKING:
    from pipewise.kernel.ports import DataStore
    from pipewise.kernel.prompt import RenderedPrompt

ReasoningState = Literal["draft", "critique", "final_spec"]


@dataclass(frozen=True)
class DataSource:
    """Opaque location of the data a branch was built from. Never inspected."""

    location: str

    @staticmethod
    def from_path(path: str | os.PathLike[str]) -> DataSource:
        return DataSource(os.fspath(path))

    def __str__(self) -> str:
        return self.location


@dataclass(frozen=True)
class PipelineEvent:
    """A single immutable entry in a branch's history.

    `info` is frozen into a read-only mapping on construction.
    """

    kind: str
    info: Mapping[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if not isinstance(self.info, MappingProxyType):
            object.__setattr__(self, "info", MappingProxyType(dict(self.info)))


@dataclass(frozen=True)
class Branch:
    """
    Named execution state: an append-only event history plus an owned store.

    Immutable - every operation returns a new Branch. The store is owned by
    the branch and is never shared with a fork; the data source is only
    referenced.
    """

    name: str
    store: DataStore
    data_source: DataSource
    events: tuple[PipelineEvent, ...] = ()

    def with_event(self, event: PipelineEvent) -> Branch:
        """Append an event immutably."""
        return Branch(
            name=self.name,
            store=self.store,
            data_source=self.data_source,
            events=self.events + (event,),
        )

    def record(self, kind: str, /, **info: Any) -> Branch:
        return self.with_event(PipelineEvent(kind=kind, info=info))

    def with_reasoning(
        self,
        state: ReasoningState,
        text: str,
        prompt: RenderedPrompt | str,
        tool_calls: Sequence[Mapping[str, Any]] | None = None,
    ) -> Branch:
        """Record a reasoning step (draft, critique or final spec)."""
        prompt_text = prompt if isinstance(prompt, str) else prompt.text
        return self.record(
            "reasoning",
            state=state,
            text=text,
            prompt=prompt_text,
            tool_calls=tuple(dict(call) for call in tool_calls or ()),
        )

    def ingest(self, source: str, documents: Iterable[tuple[str, Any]]) -> Branch:
        """Add `(id, document)` pairs to the owned store and record an ingest event."""
        ids = []
        for doc_id, document in documents:
            self.store.add(doc_id, document)
            ids.append(doc_id)
        return self.record("ingest", source=source, ids=tuple(ids))

    def events_of(self, kind: str) -> tuple[PipelineEvent, ...]:
        return tuple(event for event in self.events if event.kind == kind)

    def query(self, predicate: Callable[[PipelineEvent], bool]) -> Iterable[PipelineEvent]:
        """Query events matching predicate, in causal order."""
        return (event for event in self.events if predicate(event))

    def last_event(self) -> Option[PipelineEvent]:
        if not self.events:
            return Option.Nothing()
        return Option.Some(self.events[-1])

    def fork(self, new_name: str, new_store: DataStore) -> Branch:
        """Copy the event history under a new name with its own store.

        Raises:
            ValueError: If `new_store` is this branch's own store
        """
        if new_store is self.store:
            raise ValueError(f"fork '{new_name}' must not share the store of branch '{self.name}'")
        return Branch(
            name=new_name,
            store=new_store,
            data_source=self.data_source,
            events=self.events,
        )

    def __len__(self) -> int:
        return len(self.events)
