"""Register test system.

Servers that claim register semantics (a single value that can be written
with Put and read with Get) are checked against a fixed workload of clients:

- Every client first Puts a value, waits for PutOk, and then Gets.
- The first client Puts twice before its Get, to widen the interleavings.
- Requests are spread across servers by client and operation index.

Servers occupy the first actor ids and clients follow them. The system
records every request and reply in a RegisterHistory, and the
"linearizable" property fails on the first state whose history has no
sequential explanation.

Usage:
    model = register_test_model([SingleCopyRegister(), SingleCopyRegister()])
    engine = ModelEngine(model)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from .actor import Actor, ActorModel, Id, Out, SystemState
from .base import Property

# Value every register holds before the first write
DEFAULT_VALUE = ""


# =============================================================================
# Messages
# =============================================================================


@dataclass(frozen=True)
class Put:
    request_id: int
    value: str


@dataclass(frozen=True)
class Get:
    request_id: int


@dataclass(frozen=True)
class PutOk:
    request_id: int


@dataclass(frozen=True)
class GetOk:
    request_id: int
    value: str


@dataclass(frozen=True)
class Internal:
    """A message of the server's own protocol, invisible to clients."""

    msg: Any


RegisterMsg = Union[Put, Get, PutOk, GetOk, Internal]


# =============================================================================
# Actors
# =============================================================================


@dataclass(frozen=True)
class ClientState:
    awaiting: Optional[int]
    op_count: int


class RegisterClient(Actor):
    """Issues Puts followed by a Get, one request at a time."""

    def __init__(self, server_count: int):
        if server_count < 1:
            raise ValueError("a register client needs at least one server")
        self.server_count = server_count

    def _put_count(self, id: Id) -> int:
        return 2 if id == self.server_count else 1

    def on_start(self, id: Id, out: Out) -> ClientState:
        request_id = id
        value = chr(ord("A") + id - self.server_count)
        out.send(id % self.server_count, Put(request_id, value))
        return ClientState(awaiting=request_id, op_count=1)

    def on_msg(self, id: Id, state: ClientState, src: Id, msg: Any, out: Out) -> Optional[ClientState]:
        if state.awaiting is None:
            return None
        if isinstance(msg, PutOk) and msg.request_id == state.awaiting:
            request_id = (state.op_count + 1) * id
            server = (id + state.op_count) % self.server_count
            if state.op_count < self._put_count(id):
                out.send(server, Put(request_id, chr(ord("Z") - (id - self.server_count))))
            else:
                out.send(server, Get(request_id))
            return ClientState(awaiting=request_id, op_count=state.op_count + 1)
        if isinstance(msg, GetOk) and msg.request_id == state.awaiting:
            return ClientState(awaiting=None, op_count=state.op_count + 1)
        return None


class SingleCopyRegister(Actor):
    """A server holding one value with no replication.

    Linearizable on its own; several of them behind one client workload
    are not, since each copy is written independently.
    """

    def on_start(self, id: Id, out: Out) -> str:
        return DEFAULT_VALUE

    def on_msg(self, id: Id, state: str, src: Id, msg: Any, out: Out) -> Optional[str]:
        if isinstance(msg, Put):
            out.send(src, PutOk(msg.request_id))
            return msg.value
        if isinstance(msg, Get):
            out.send(src, GetOk(msg.request_id, state))
            return None
        return None


# =============================================================================
# History
# =============================================================================


@dataclass(frozen=True)
class Read:
    pass


@dataclass(frozen=True)
class Write:
    value: str


@dataclass(frozen=True)
class ReadOk:
    value: str


@dataclass(frozen=True)
class WriteOk:
    pass


@dataclass(frozen=True)
class Operation:
    """One client request. returned is None while the request is in flight."""

    thread: Id
    request_id: int
    op: Union[Read, Write]
    invoked: int
    returned: Optional[int] = None
    ret: Optional[Union[ReadOk, WriteOk]] = None

    def __str__(self) -> str:
        text = f"{self.thread}:{self.op}"
        return f"{text}->{self.ret}" if self.ret is not None else f"{text}->..."


@dataclass(frozen=True)
class RegisterHistory:
    """Requests and replies observed by clients, in the order they happened.

    invoked/returned are positions on a logical clock shared by all clients,
    so operation a precedes b in real time when a.returned < b.invoked.
    """

    operations: Tuple[Operation, ...] = ()
    clock: int = 0
    init_value: str = DEFAULT_VALUE
    valid: bool = True

    def pending(self, thread: Id) -> Optional[int]:
        for index, operation in enumerate(self.operations):
            if operation.thread == thread and operation.returned is None:
                return index
        return None

    def on_invoke(self, thread: Id, request_id: int, op: Union[Read, Write]) -> "RegisterHistory":
        if self.pending(thread) is not None:
            # A client has at most one request outstanding
            return replace(self, valid=False)
        operation = Operation(thread, request_id, op, invoked=self.clock)
        return replace(self, operations=self.operations + (operation,), clock=self.clock + 1)

    def on_return(self, thread: Id, request_id: int, ret: Union[ReadOk, WriteOk]) -> Optional["RegisterHistory"]:
        """Record a reply. Returns None for a reply to no outstanding request."""
        index = self.pending(thread)
        if index is None or self.operations[index].request_id != request_id:
            return None
        completed = replace(self.operations[index], returned=self.clock, ret=ret)
        operations = self.operations[:index] + (completed,) + self.operations[index + 1:]
        return replace(self, operations=operations, clock=self.clock + 1)

    def serialized_history(self) -> Optional[List[Operation]]:
        """A sequential order of the operations that explains every reply.

        Completed operations must all appear; in-flight ones may appear or
        not. Returns None if no such order exists.
        """
        if not self.valid:
            return None
        return _linearize(self.init_value, list(self.operations), [])

    def is_linearizable(self) -> bool:
        return self.serialized_history() is not None

    def __str__(self) -> str:
        return "[" + ", ".join(str(operation) for operation in self.operations) + "]"


def _linearize(value: str, remaining: List[Operation], order: List[Operation]) -> Optional[List[Operation]]:
    if all(operation.returned is None for operation in remaining):
        return order
    for index, candidate in enumerate(remaining):
        rest = remaining[:index] + remaining[index + 1:]
        if any(other.returned is not None and other.returned < candidate.invoked for other in rest):
            continue
        if isinstance(candidate.op, Write):
            if candidate.ret is not None and not isinstance(candidate.ret, WriteOk):
                continue
            next_value = candidate.op.value
        else:
            if candidate.ret is not None and candidate.ret != ReadOk(value):
                continue
            next_value = value
        found = _linearize(next_value, rest, order + [candidate])
        if found is not None:
            return found
    return None


# =============================================================================
# Model
# =============================================================================


def _is_linearizable(model: "RegisterTestModel", state: SystemState) -> bool:
    return state.history.is_linearizable()


def _value_chosen(model: "RegisterTestModel", state: SystemState) -> bool:
    return any(isinstance(env.msg, GetOk) and env.msg.value != DEFAULT_VALUE for env in state.network)


class RegisterTestModel(ActorModel):
    """Servers under test plus the client workload, with history recording."""

    def __init__(
        self,
        servers: Sequence[Actor],
        client_count: int = 2,
        lossy: bool = False,
        duplicating: bool = True,
        boundary: Optional[Callable[[Any, SystemState], bool]] = None,
        name: Optional[str] = None,
    ):
        servers = list(servers)
        clients = [RegisterClient(server_count=len(servers)) for _ in range(client_count)]
        super().__init__(
            actors=servers + clients,
            properties=[
                Property.always("linearizable", _is_linearizable),
                Property.sometimes("value chosen", _value_chosen),
            ],
            lossy=lossy,
            duplicating=duplicating,
            boundary=boundary,
            name=name,
        )
        self.server_count = len(servers)
        self.client_count = client_count

    def init_history(self) -> RegisterHistory:
        return RegisterHistory()

    def record_msg_out(self, history: RegisterHistory, src: Id, dst: Id, msg: Any) -> Optional[RegisterHistory]:
        if isinstance(msg, Put):
            return history.on_invoke(src, msg.request_id, Write(msg.value))
        if isinstance(msg, Get):
            return history.on_invoke(src, msg.request_id, Read())
        return None

    def record_msg_in(self, history: RegisterHistory, src: Id, dst: Id, msg: Any) -> Optional[RegisterHistory]:
        if isinstance(msg, PutOk):
            return history.on_return(dst, msg.request_id, WriteOk())
        if isinstance(msg, GetOk):
            return history.on_return(dst, msg.request_id, ReadOk(msg.value))
        return None


def register_test_model(
    servers: Sequence[Actor],
    client_count: int = 2,
    lossy: bool = False,
    duplicating: bool = True,
) -> RegisterTestModel:
    """Build a register test system around servers."""
    label = "server" if len(servers) == 1 else "servers"
    return RegisterTestModel(
        servers,
        client_count=client_count,
        lossy=lossy,
        duplicating=duplicating,
        name=f"register ({len(servers)} {label}, {client_count} clients)",
    )
