"""
lmreward State Primitives

Building blocks shared by every stateful component:
  - Clocks providing the single sequential ``now`` all components agree on
  - Event records (the component's event log)
  - Snapshot / restore and the all-or-nothing ``transaction`` scope
  - Ownable (owner-gated admin with two-step ownership transfer)

Every external call is an atomic unit: the participating components are
snapshotted on entry and restored if anything inside raises.
"""

from __future__ import annotations

import copy
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Protocol, Tuple

from .exceptions import InvalidParameterError, NotOwnerError, NotPendingOwnerError
from .logger import get_logger
from .utils.address import derive_address, to_address

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  CLOCKS
# ══════════════════════════════════════════════════════════════════════

class Clock(Protocol):
    def now(self) -> int: ...


class BlockClock:
    """
    Manually advanced clock (integer seconds).

    Plays the role of the block timestamp: tests and the simulator move it
    forward explicitly, and it never goes backwards.
    """

    def __init__(self, timestamp: int = 0) -> None:
        if timestamp < 0:
            raise InvalidParameterError("timestamp cannot be negative")
        self._timestamp = int(timestamp)

    def now(self) -> int:
        return self._timestamp

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise InvalidParameterError("clock cannot move backwards")
        self._timestamp += int(seconds)
        return self._timestamp

    def set(self, timestamp: int) -> int:
        if timestamp < self._timestamp:
            raise InvalidParameterError(
                f"clock cannot move backwards: {timestamp} < {self._timestamp}"
            )
        self._timestamp = int(timestamp)
        return self._timestamp


class SystemClock:
    """Wall-clock time, truncated to whole seconds."""

    def now(self) -> int:
        return int(time.time())


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Event:
    """A single entry of a component's event log."""
    name: str
    emitter: str
    args: Dict[str, Any] = field(default_factory=dict)
    timestamp: int = 0

    def __getitem__(self, key: str) -> Any:
        return self.args[key]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "emitter": self.emitter,
            "args": {k: (str(v) if isinstance(v, int) and not isinstance(v, bool) else v)
                     for k, v in self.args.items()},
            "timestamp": self.timestamp,
        }


# ══════════════════════════════════════════════════════════════════════
#  SNAPSHOT / TRANSACTION
# ══════════════════════════════════════════════════════════════════════

class Snapshotable(Protocol):
    def take_snapshot(self) -> Dict[str, Any]: ...
    def _restore_snapshot(self, snapshot: Dict[str, Any]) -> None: ...


@contextmanager
def transaction(*components: Snapshotable) -> Iterator[None]:
    """
    All-or-nothing scope over *components*.

    Each distinct component is snapshotted on entry. If the body raises,
    every snapshot is restored (innermost first) and the exception
    propagates unchanged.
    """
    seen = set()
    snapshots: List[Tuple[Snapshotable, Dict[str, Any]]] = []
    for component in components:
        if component is None or id(component) in seen:
            continue
        seen.add(id(component))
        snapshots.append((component, component.take_snapshot()))
    try:
        yield
    except BaseException:
        for component, snapshot in reversed(snapshots):
            component._restore_snapshot(snapshot)
        raise


_label_counts: Dict[str, int] = {}


def _unique_label(label: str) -> str:
    """First use of a label keeps it as is; later uses get a '#n' suffix."""
    count = _label_counts.get(label, 0)
    _label_counts[label] = count + 1
    return label if count == 0 else f"{label}#{count}"


class Contract:
    """
    Base class for in-process components.

    Subclasses list their mutable attributes in ``_STATE_FIELDS`` (deep
    copied) and their references to collaborators in ``_REF_FIELDS``
    (containers copied, instances shared); those plus the event log are
    what ``take_snapshot`` captures.
    """

    _STATE_FIELDS: Tuple[str, ...] = ()
    _REF_FIELDS: Tuple[str, ...] = ()

    def __init__(self, clock: Clock, address: Optional[str] = None, label: str = "") -> None:
        self.clock = clock
        self.address = to_address(address) if address else derive_address(
            _unique_label(label or type(self).__name__)
        )
        self._events: List[Event] = []

    # ── Events ────────────────────────────────────────────────────────

    def _emit(self, name: str, **args: Any) -> Event:
        event = Event(name=name, emitter=self.address, args=args, timestamp=self.clock.now())
        self._events.append(event)
        return event

    @property
    def events(self) -> List[Event]:
        return list(self._events)

    def events_named(self, name: str) -> List[Event]:
        return [e for e in self._events if e.name == name]

    # ── Snapshot ──────────────────────────────────────────────────────

    def take_snapshot(self) -> Dict[str, Any]:
        snapshot = {name: copy.deepcopy(getattr(self, name)) for name in self._STATE_FIELDS}
        for name in self._REF_FIELDS:
            value = getattr(self, name)
            snapshot[name] = copy.copy(value) if isinstance(value, (dict, list, set)) else value
        snapshot["_events"] = list(self._events)
        return snapshot

    def _restore_snapshot(self, snapshot: Dict[str, Any]) -> None:
        for name, value in snapshot.items():
            setattr(self, name, value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"


class Ownable(Contract):
    """Contract with a single owner and two-step ownership transfer."""

    _STATE_FIELDS: Tuple[str, ...] = ("owner", "pending_owner")

    def __init__(
        self,
        owner: str,
        clock: Clock,
        address: Optional[str] = None,
        label: str = "",
    ) -> None:
        super().__init__(clock, address=address, label=label)
        self.owner = to_address(owner)
        self.pending_owner: Optional[str] = None

    def _require_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise NotOwnerError()

    def _set_pending_owner(self, caller: str, new_pending_owner: str) -> None:
        self._require_owner(caller)
        new_pending_owner = to_address(new_pending_owner)
        if new_pending_owner == self.owner or new_pending_owner == self.pending_owner:
            raise InvalidParameterError("Pending owner cannot be the owner or unchanged")
        old = self.pending_owner
        self.pending_owner = new_pending_owner
        self._emit("NewPendingOwner", old_pending_owner=old, new_pending_owner=new_pending_owner)

    def _accept_owner(self, caller: str) -> None:
        if self.pending_owner is None or caller != self.pending_owner:
            raise NotPendingOwnerError("_acceptOwner: only pending owner can accept")
        old = self.owner
        self.owner = self.pending_owner
        self.pending_owner = None
        self._emit("NewOwner", old_owner=old, new_owner=self.owner)
        logger.info("%s ownership transferred %s -> %s", self, old, self.owner)
