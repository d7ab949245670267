"""Traverses repository resources by following LDP containment relationships.

Retrieval of repository resources occurs in parallel. Callers are expected to
run `Visitor.walk` in a background thread and read accepted resources, errors
and events off of the visitor's channels in separate threads.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Protocol

from dupecheck.models.container import Container

from .channel import Channel

logger = logging.getLogger(__name__)

Predicate = Callable[[Container], bool]


class Retriever(Protocol):
    def get(self, uri: str) -> Container:
        ...


class EventType(str, Enum):
    """Walk lifecycle events.

    PROCESSED is sent once a consumer has received an accepted resource off
    the containers channel; whatever the consumer does with it afterwards,
    duplicate checking included, is not observed by the visitor.
    """

    DESCEND_START = "descend_start"
    DESCEND_END = "descend_end"
    PROCESSED = "processed"


@dataclass(frozen=True)
class VisitEvent:
    type: EventType
    uri: str


class VisitError(Exception):
    """A resource could not be visited; the rest of the walk continues."""

    def __init__(self, uri: str, message: str, wrapped: Optional[BaseException] = None) -> None:
        super().__init__(f"visit: error visiting uri {uri}, {message}")
        self.uri = uri
        self.message = message
        self.wrapped = wrapped
        self.__cause__ = wrapped


class WalkError(Exception):
    """The walk could not start: the root resource is unreachable or malformed."""

    def __init__(self, uri: str, message: str) -> None:
        super().__init__(f"visit: error retrieving {uri}: {message}")
        self.uri = uri


def descend_all(container: Container) -> bool:
    return True


def accept_pass_resources(container: Container) -> bool:
    return container.is_pass_resource and bool(container.uri)


class Visitor:
    def __init__(self, retriever: Retriever, max_concurrent: int) -> None:
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")
        # invocation of the retriever is gated by the semaphore
        self.retriever = retriever
        self.max_concurrent = max_concurrent
        self._semaphore = threading.BoundedSemaphore(max_concurrent)
        self._cancelled = threading.Event()
        self._walked = False
        # accepted resources are written to this channel
        self.containers: Channel[Container] = Channel("containers")
        # errors encountered when traversing the repository
        self.errors: Channel[VisitError] = Channel("errors")
        self.events: Channel[VisitEvent] = Channel("events")

    def cancel(self) -> None:
        """Stop scheduling new fetches; in-flight fetches finish and the walk unwinds."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def walk(self, start_uri: str, descend: Optional[Predicate] = None, accept: Optional[Predicate] = None) -> None:
        """Walk the tree rooted at `start_uri`.

        Children of each resource are retrieved in parallel (at most
        `max_concurrent` retrievals in flight). Each retrieved resource is
        tested with `accept`, and written to `containers` if accepted, then
        tested with `descend` to decide whether to recurse into its children.
        The starting resource is tested for acceptance too, and is always
        descended into. A Visitor performs a single walk.

        Both predicates may be None: every resource is descended into, and
        every PASS resource is accepted.

        Blocks until every resource has been visited and all three channels
        have been read and closed. Raises WalkError if the starting resource
        cannot be retrieved; the channels are closed in that case as well.
        """
        if self._walked:
            raise RuntimeError("visit: a Visitor performs a single walk; create a new Visitor")
        self._walked = True
        descend = descend or descend_all
        accept = accept or accept_pass_resources
        try:
            try:
                with self._semaphore:
                    root = self.retriever.get(start_uri)
            except Exception as exc:
                raise WalkError(start_uri, str(exc)) from exc
            if not root.uri:
                raise WalkError(start_uri, "missing container")

            if accept(root):
                self._deliver(root)
            self._walk_children(root, descend, accept)
        finally:
            self.containers.close()
            self.errors.close()
            self.events.close()

    def _deliver(self, container: Container) -> None:
        self.containers.send(container)
        self.events.send(VisitEvent(EventType.PROCESSED, container.uri))

    def _walk_children(self, container: Container, descend: Predicate, accept: Predicate) -> None:
        self.events.send(VisitEvent(EventType.DESCEND_START, container.uri))
        units: List[threading.Thread] = []
        try:
            for uri in container.contains:
                if self.cancelled:
                    break
                self._semaphore.acquire()
                unit = threading.Thread(
                    target=self._visit,
                    args=(uri, descend, accept),
                    name=f"visit {uri}",
                    daemon=True,
                )
                try:
                    unit.start()
                except RuntimeError:
                    self._semaphore.release()
                    raise
                units.append(unit)
        finally:
            # started units may still send; the channels must outlive them
            for unit in units:
                unit.join()
        self.events.send(VisitEvent(EventType.DESCEND_END, container.uri))

    def _visit(self, uri: str, descend: Predicate, accept: Predicate) -> None:
        # a slot was acquired on our behalf; give it back as soon as the fetch completes
        if self.cancelled:
            self._semaphore.release()
            return
        logger.debug("visit: retrieving %s", uri)
        try:
            container = self.retriever.get(uri)
        except Exception as exc:
            self._semaphore.release()
            self.errors.send(VisitError(uri, str(exc), exc))
            return
        self._semaphore.release()

        if not container.uri:
            self.errors.send(VisitError(uri, "missing container"))
            return

        try:
            accepted = accept(container)
        except Exception as exc:
            self.errors.send(VisitError(uri, f"error testing for acceptance: {exc}", exc))
            return
        if accepted:
            self._deliver(container)

        try:
            descending = descend(container)
        except Exception as exc:
            self.errors.send(VisitError(uri, f"error testing for descent: {exc}", exc))
            return
        if descending and container.contains:
            try:
                self._walk_children(container, descend, accept)
            except RuntimeError as exc:
                self.errors.send(VisitError(uri, f"error descending: {exc}", exc))
