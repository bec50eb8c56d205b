"""Execution runtime — block clock, contract registry, atomic transactions.

The runtime models the platform the contracts run on:
- One state-mutating call completes fully before the next begins.
- The outermost external call is a transaction. If anything inside it
  raises, every contract's state and the ciphertext engine's state are
  restored to the pre-call snapshot, buffered events are dropped, and
  the exception propagates unchanged. There is no partial application.
- Transient ciphertext grants live for one transaction only.
- Contracts reference each other by address and resolve through the
  runtime, so re-pointing an address takes effect on the next call.
"""

from __future__ import annotations

import copy
import functools
import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Optional, TypeVar

from paygram.chain.addresses import derive_contract_address, to_address
from paygram.errors import ContractNotFound
from paygram.fhe.engine import CiphertextEngine, FHEContext
from paygram.persistence.event_log import EventKind, EventLog, EventRecord

logger = logging.getLogger(__name__)

C = TypeVar("C", bound="Contract")


class BlockClock:
    """Block timestamp in integer Unix seconds. Never moves backwards."""

    def __init__(self, start: Optional[int] = None) -> None:
        self._now = int(time.time()) if start is None else int(start)

    @property
    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self._now += int(seconds)
        return self._now

    def set(self, timestamp: int) -> int:
        if timestamp < self._now:
            raise ValueError(
                f"Clock cannot move backwards: {timestamp} < {self._now}"
            )
        self._now = int(timestamp)
        return self._now


class Runtime:
    """Single-threaded, transaction-serial execution environment.

    Usage:
        runtime = Runtime(clock=BlockClock(start=1_700_000_000))
        registry = runtime.deploy(TrustRegistry, owner, deployer=owner)
        registry.set_oracle(oracle, True, caller=owner)
        runtime.clock.advance(86_400)
    """

    def __init__(
        self,
        engine: Optional[CiphertextEngine] = None,
        clock: Optional[BlockClock] = None,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self.engine = engine or CiphertextEngine()
        self.clock = clock or BlockClock()
        self.event_log = event_log if event_log is not None else EventLog()
        self._contracts: dict[str, Contract] = {}
        self._nonces: dict[str, int] = {}
        self._depth = 0
        self._pending_events: list[tuple[EventKind, str, dict[str, Any]]] = []

    # ------------------------------------------------------------------
    # Deployment and lookup
    # ------------------------------------------------------------------

    def deploy(self, contract_cls: type[C], *args: Any, deployer: str, **kwargs: Any) -> C:
        """Construct a contract inside its own transaction."""
        deployer = to_address(deployer)
        with self.call(deployer):
            contract = contract_cls(self, deployer, *args, **kwargs)
        logger.info("Deployed %s at %s", contract_cls.__name__, contract.address)
        return contract

    def register(self, contract: Contract, deployer: str) -> str:
        nonce = self._nonces.get(deployer, 0)
        self._nonces[deployer] = nonce + 1
        address = derive_contract_address(deployer, nonce)
        self._contracts[address] = contract
        return address

    def contract_at(self, address: str) -> Contract:
        contract = self._contracts.get(address)
        if contract is None:
            raise ContractNotFound(f"No contract deployed at {address}")
        return contract

    def is_contract(self, address: str) -> bool:
        return address in self._contracts

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def call(self, sender: str) -> Iterator[None]:
        """Enter a call frame. The outermost frame is an atomic transaction."""
        outermost = self._depth == 0
        snapshot = self._take_snapshot() if outermost else None
        self._depth += 1
        try:
            yield
        except Exception as exc:
            self._depth -= 1
            if outermost:
                self._restore_snapshot(snapshot)
                self._pending_events.clear()
                self.engine.end_transaction()
                logger.debug(
                    "Transaction from %s reverted: %s", sender, type(exc).__name__
                )
            raise
        else:
            self._depth -= 1
            if outermost:
                self._flush_events()
                self.engine.end_transaction()

    def emit(self, kind: EventKind, emitter: str, payload: dict[str, Any]) -> None:
        self._pending_events.append((kind, emitter, payload))

    def events(
        self,
        kind: Optional[EventKind] = None,
        emitter: Optional[str] = None,
    ) -> list[EventRecord]:
        return self.event_log.events(kind, emitter=emitter)

    def _flush_events(self) -> None:
        ts = datetime.fromtimestamp(self.clock.now, tz=timezone.utc)
        for kind, emitter, payload in self._pending_events:
            event_id = f"evt_{self.event_log.count + 1:08d}"
            self.event_log.append(
                EventRecord.create(event_id, kind, emitter, payload, timestamp_utc=ts)
            )
        self._pending_events.clear()

    def _take_snapshot(self) -> dict[str, Any]:
        return {
            "contracts": dict(self._contracts),
            "nonces": dict(self._nonces),
            "states": {
                address: contract._snapshot_state()
                for address, contract in self._contracts.items()
            },
            "engine": self.engine.snapshot(),
        }

    def _restore_snapshot(self, snapshot: dict[str, Any]) -> None:
        self._contracts = snapshot["contracts"]
        self._nonces = snapshot["nonces"]
        for address, state in snapshot["states"].items():
            self._contracts[address]._restore_state(state)
        self.engine.restore(snapshot["engine"])


class Contract:
    """Base class for deployed contracts.

    Subclass state lives in plain instance attributes; everything except
    the runtime reference is snapshotted per transaction.
    """

    _NON_STATE = frozenset({"_runtime", "address"})

    def __init__(self, runtime: Runtime, deployer: str) -> None:
        self._runtime = runtime
        self.address = runtime.register(self, deployer)

    @property
    def fhe(self) -> FHEContext:
        return self._runtime.engine.bind(self.address)

    @property
    def now(self) -> int:
        return self._runtime.clock.now

    def _emit(self, kind: EventKind, **payload: Any) -> None:
        self._runtime.emit(kind, self.address, payload)

    def _snapshot_state(self) -> dict[str, Any]:
        return copy.deepcopy(
            {k: v for k, v in vars(self).items() if k not in self._NON_STATE}
        )

    def _restore_state(self, state: dict[str, Any]) -> None:
        for key in [k for k in vars(self) if k not in self._NON_STATE]:
            delattr(self, key)
        for key, value in copy.deepcopy(state).items():
            setattr(self, key, value)


F = TypeVar("F", bound=Callable[..., Any])


def external(func: F) -> F:
    """Mark a contract method as an external entry point.

    The decorated method takes a keyword-only ``caller`` (the message
    sender), which is checksummed before the body runs inside a call
    frame.
    """

    @functools.wraps(func)
    def wrapper(self: Contract, *args: Any, caller: str, **kwargs: Any) -> Any:
        caller = to_address(caller)
        with self._runtime.call(caller):
            return func(self, *args, caller=caller, **kwargs)

    return wrapper  # type: ignore[return-value]
