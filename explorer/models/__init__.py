"""
Explorable models for the in-process ModelEngine.

    from explorer.models import ping_pong_model
    engine = ModelEngine(ping_pong_model(max_nat=5))

    from explorer.models import SingleCopyRegister, register_test_model
    engine = ModelEngine(register_test_model([SingleCopyRegister()]))
"""

from .actor import (
    Actor,
    ActorModel,
    CancelTimer,
    Deliver,
    Drop,
    Envelope,
    Out,
    Send,
    SetTimer,
    SystemState,
    Timeout,
    is_no_op,
    majority,
)
from .base import Expectation, Model, Property
from .ping_pong import Ping, PingPongActor, PingPongCount, Pong, ping_pong_model
from .register import (
    ClientState,
    Get,
    GetOk,
    Internal,
    Put,
    PutOk,
    RegisterClient,
    RegisterHistory,
    RegisterTestModel,
    SingleCopyRegister,
    register_test_model,
)

__all__ = [
    "Model",
    "Property",
    "Expectation",
    "Actor",
    "ActorModel",
    "Out",
    "Send",
    "SetTimer",
    "CancelTimer",
    "Envelope",
    "Deliver",
    "Drop",
    "Timeout",
    "SystemState",
    "is_no_op",
    "majority",
    "Ping",
    "Pong",
    "PingPongCount",
    "PingPongActor",
    "ping_pong_model",
    "Put",
    "Get",
    "PutOk",
    "GetOk",
    "Internal",
    "ClientState",
    "RegisterClient",
    "SingleCopyRegister",
    "RegisterHistory",
    "RegisterTestModel",
    "register_test_model",
]
