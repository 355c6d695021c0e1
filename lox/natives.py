"""Native functions installed into the global environment by the driver."""

from __future__ import annotations

import time

from .runtime import Environment, NativeFunction


def _clock(arguments: list[object]) -> object:
    return time.time()


NATIVES: list[NativeFunction] = [
    NativeFunction("clock", 0, _clock),
]


def define_natives(env: Environment) -> Environment:
    """Define every native in env and return it."""
    for native in NATIVES:
        env.define(native.name, native)
    return env
