"""
BOXOFFICE Development Network

An in-process ledger that deploys Python contracts and executes signed
transactions against them, standing in for a local Hardhat node.

    ┌─────────────────────────────────────────────────────────────────┐
    │                           DevChain                              │
    │  accounts (signers) │ contracts │ nonces │ blocks │ receipts    │
    │                                                                 │
    │  send_transaction ──► sign ─► verify ─► checkpoint ─► execute  │
    │                                            │             │      │
    │                                  revert ◄──┘   commit ◄──┘      │
    │                                                                 │
    │  snapshot / revert        (evm_snapshot / evm_revert)           │
    └─────────────────────────────────────────────────────────────────┘

Execution model:

    - A contract keeps all mutable storage in ``Contract.state``.
    - Methods decorated with ``@external`` change state and run as
      transactions; methods decorated with ``@view`` are read-only calls.
    - A transaction is atomic: if anything raises, every contract's storage,
      every nonce and every pending log is restored and no block is mined.
    - Inter-contract calls (``Contract.invoke``) run inside the caller's
      transaction with ``msg_sender`` set to the calling contract.
    - One block is mined per successful transaction.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import copy
import hashlib
import json
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type, TypeVar, Union

from boxoffice.accounts import (
    Signer,
    address_from_public_key,
    contract_address,
    derive_signers,
    to_address,
    verify_signature,
)
from boxoffice.config import BoxOfficeConfig, get_config
from boxoffice.hardening import AtomicCounter
from boxoffice.observability import Layer, get_logger

log = get_logger("devchain", Layer.CHAIN)

EXTERNAL = "external"
VIEW = "view"

F = TypeVar("F", bound=Callable[..., Any])


def external(func: F) -> F:
    """Mark a contract method as a state-changing entry point."""
    func.__abi__ = EXTERNAL  # type: ignore[attr-defined]
    return func


def view(func: F) -> F:
    """Mark a contract method as a read-only entry point."""
    func.__abi__ = VIEW  # type: ignore[attr-defined]
    return func


def abi_of(contract_cls: type, method: str) -> Optional[str]:
    return getattr(getattr(contract_cls, method, None), "__abi__", None)


# =============================================================================
# ERRORS
# =============================================================================

class ChainError(Exception):
    """Base class for dev network errors."""
    pass


class TransactionReverted(ChainError):
    """A contract rejected the transaction."""

    PREFIX = "VM Exception while processing transaction: reverted with reason string"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"{self.PREFIX} '{reason}'")


class ContractNotFound(ChainError):
    pass


class UnknownMethod(ChainError):
    pass


class InvalidTransactionSignature(ChainError):
    pass


class SnapshotError(ChainError):
    pass


def require(condition: Any, reason: str = "Error") -> None:
    """Revert the current transaction with ``reason`` unless ``condition`` holds."""
    if not condition:
        raise TransactionReverted(reason)


# =============================================================================
# TRANSACTIONS, LOGS, BLOCKS
# =============================================================================

@dataclass(frozen=True)
class LogEntry:
    """An event emitted by a contract during a transaction."""
    address: str
    event: str
    args: Dict[str, Any]
    log_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "event": self.event,
            "args": self.args,
            "log_index": self.log_index,
        }


@dataclass
class Transaction:
    """A signed request to run one contract method."""
    sender: str
    to: Optional[str]
    method: str
    args: Tuple[Any, ...]
    nonce: int
    chain_id: int
    signature: bytes = field(default=b"", repr=False)

    def signing_payload(self) -> bytes:
        """Canonical bytes covered by the signature."""
        body = {
            "chain_id": self.chain_id,
            "from": self.sender,
            "to": self.to,
            "method": self.method,
            "args": list(self.args),
            "nonce": self.nonce,
        }
        return json.dumps(body, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")

    @property
    def hash(self) -> str:
        return "0x" + hashlib.sha3_256(self.signing_payload()).hexdigest()


@dataclass
class Receipt:
    """Outcome of a mined transaction."""
    tx_hash: str
    block_number: int
    sender: str
    to: Optional[str]
    method: str
    status: int
    logs: List[LogEntry] = field(default_factory=list)
    return_value: Any = None
    contract_address: Optional[str] = None

    def events(self, name: str) -> List[LogEntry]:
        """Logs with the given event name, in emission order."""
        return [entry for entry in self.logs if entry.event == name]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tx_hash": self.tx_hash,
            "block_number": self.block_number,
            "from": self.sender,
            "to": self.to,
            "method": self.method,
            "status": self.status,
            "logs": [entry.to_dict() for entry in self.logs],
            "return_value": self.return_value,
            "contract_address": self.contract_address,
        }


@dataclass(frozen=True)
class Block:
    number: int
    timestamp: int
    parent_hash: str
    tx_hashes: Tuple[str, ...] = ()

    @property
    def hash(self) -> str:
        body = f"{self.number}:{self.timestamp}:{self.parent_hash}:{','.join(self.tx_hashes)}"
        return "0x" + hashlib.sha3_256(body.encode("utf-8")).hexdigest()


@dataclass
class _ChainState:
    """Captured world state for checkpoints and snapshots."""
    contracts: Dict[str, "Contract"]
    storage: Dict[str, Dict[str, Any]]
    nonces: Dict[str, int]
    block_count: int
    receipts: Dict[str, Receipt]
    pending_logs: List[LogEntry]
    time_offset: int


# =============================================================================
# CONTRACTS
# =============================================================================

class Contract:
    """
    Base class for dev network contracts.

    Subclasses implement ``constructor`` (run once, as the deployment
    transaction) and mark their entry points with ``@external`` or ``@view``.
    All mutable storage lives in ``self.state`` so the chain can checkpoint it.
    """

    def __init__(self, chain: "DevChain", address: str):
        self.chain = chain
        self.address = address
        self.state: Dict[str, Any] = {}

    def constructor(self, *args: Any) -> None:
        pass

    @property
    def msg_sender(self) -> str:
        return self.chain.msg_sender

    def emit(self, event: str, **args: Any) -> None:
        self.chain._record_log(self.address, event, args)

    def invoke(self, address: str, method: str, *args: Any) -> Any:
        """Call ``method`` on another contract as this contract."""
        return self.chain._internal_call(self.address, address, method, args)

    require = staticmethod(require)


class ContractHandle:
    """
    Client-side view of a deployed contract bound to a signer.

    ``handle.balance_of(addr)`` performs a read-only call;
    ``handle.transfer(addr, amount)`` sends a transaction and returns its
    :class:`Receipt`. ``connect`` rebinds the handle to another signer.
    """

    def __init__(self, chain: "DevChain", address: str, signer: Signer):
        self._chain = chain
        self._address = address
        self._signer = signer

    @property
    def address(self) -> str:
        return self._address

    @property
    def signer(self) -> Signer:
        return self._signer

    @property
    def contract_name(self) -> str:
        return type(self._chain.contract_at(self._address)).__name__

    def connect(self, signer: Signer) -> "ContractHandle":
        return ContractHandle(self._chain, self._address, signer)

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if name.startswith("_"):
            raise AttributeError(name)

        contract_cls = type(self._chain.contract_at(self._address))
        abi = abi_of(contract_cls, name)
        if abi is None:
            raise AttributeError(f"{contract_cls.__name__} has no entry point {name!r}")

        if abi == VIEW:
            def call(*args: Any) -> Any:
                return self._chain.call(self._address, name, args, sender=self._signer)
            return call

        def transact(*args: Any) -> Receipt:
            return self._chain.send_transaction(self._signer, self._address, name, args)
        return transact

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ContractHandle):
            return self._address == other._address
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._address)

    def __str__(self) -> str:
        return self._address

    def __repr__(self) -> str:
        return f"<ContractHandle {self._address} as {self._signer.address}>"


def _normalize_arg(value: Any) -> Any:
    """Let callers pass handles and signers where an address is expected."""
    if isinstance(value, (ContractHandle, Signer)):
        return value.address
    return value


AddressLike = Union[str, Signer, ContractHandle]

C = TypeVar("C", bound=Contract)


# =============================================================================
# DEV CHAIN
# =============================================================================

class DevChain:
    """
    Single-process development network.

    All entry points take one re-entrant lock, so transactions from
    concurrent threads are applied in a total order.
    """

    def __init__(self, config: Optional[BoxOfficeConfig] = None):
        config = config or get_config()
        self.chain_id: int = config.chain.chain_id.get()
        self._genesis_timestamp: int = config.chain.genesis_timestamp.get()
        self._block_time: int = config.chain.block_time_seconds.get()

        self.accounts: List[Signer] = derive_signers(
            config.chain.mnemonic.get(),
            config.chain.account_count.get(),
        )

        self._contracts: Dict[str, Contract] = {}
        self._nonces: Dict[str, int] = {}
        self._blocks: List[Block] = [
            Block(number=0, timestamp=self._genesis_timestamp, parent_hash="0x" + "00" * 32)
        ]
        self._receipts: Dict[str, Receipt] = {}
        self._call_stack: List[str] = []
        self._pending_logs: List[LogEntry] = []
        self._snapshots: Dict[int, _ChainState] = {}
        self._snapshot_ids = AtomicCounter()
        self._time_offset = 0
        self._lock = threading.RLock()

        log.debug("Dev chain started", chain_id=self.chain_id, accounts=len(self.accounts))

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def default_signer(self) -> Signer:
        if not self.accounts:
            raise ChainError("Dev chain has no accounts")
        return self.accounts[0]

    @property
    def block_number(self) -> int:
        return len(self._blocks) - 1

    @property
    def latest_block(self) -> Block:
        return self._blocks[-1]

    @property
    def timestamp(self) -> int:
        return self.latest_block.timestamp

    @property
    def msg_sender(self) -> str:
        if not self._call_stack:
            raise ChainError("msg_sender is only available during a call")
        return self._call_stack[-1]

    def get_block(self, number: int) -> Block:
        if not 0 <= number < len(self._blocks):
            raise ChainError(f"Unknown block {number}")
        return self._blocks[number]

    def get_nonce(self, address: AddressLike) -> int:
        return self._nonces.get(to_address(_normalize_arg(address)), 0)

    def get_receipt(self, tx_hash: str) -> Receipt:
        try:
            return self._receipts[tx_hash]
        except KeyError:
            raise ChainError(f"Unknown transaction {tx_hash}") from None

    def get_code(self, address: AddressLike) -> Optional[str]:
        """Name of the contract deployed at ``address``, or None for a wallet."""
        contract = self._contracts.get(to_address(_normalize_arg(address)))
        return type(contract).__name__ if contract else None

    def contract_at(self, address: AddressLike) -> Contract:
        key = to_address(_normalize_arg(address))
        try:
            return self._contracts[key]
        except KeyError:
            raise ContractNotFound(f"No contract deployed at {key}") from None

    def handle(self, address: AddressLike, signer: Optional[Signer] = None) -> ContractHandle:
        """Handle for an already deployed contract."""
        contract = self.contract_at(address)
        return ContractHandle(self, contract.address, signer or self.default_signer)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def deploy(
        self,
        contract_cls: Type[C],
        *args: Any,
        sender: Optional[Signer] = None,
    ) -> ContractHandle:
        """Deploy ``contract_cls`` and run its constructor as ``sender``."""
        signer = sender or self.default_signer
        args = tuple(_normalize_arg(a) for a in args)

        with self._lock:
            nonce = self.get_nonce(signer.address)
            tx = self._sign(signer, Transaction(
                sender=signer.address,
                to=None,
                method="constructor",
                args=args,
                nonce=nonce,
                chain_id=self.chain_id,
            ))
            self._verify(tx, signer)
            address = contract_address(signer.address, nonce)

            checkpoint = self._capture()
            contract = contract_cls(self, address)
            self._contracts[address] = contract
            try:
                self._execute(signer.address, lambda: contract.constructor(*args))
            except Exception as exc:
                self._restore(checkpoint)
                self._log_failure(tx, exc)
                raise

            receipt = self._commit(tx, return_value=None, contract_address=address)

        log.info(
            "Contract deployed",
            contract=contract_cls.__name__,
            address=address,
            tx_hash=receipt.tx_hash,
        )
        return ContractHandle(self, address, signer)

    def send_transaction(
        self,
        signer: Signer,
        to: AddressLike,
        method: str,
        args: Sequence[Any] = (),
    ) -> Receipt:
        """Sign and execute one ``@external`` method call."""
        args = tuple(_normalize_arg(a) for a in args)

        with self._lock:
            contract = self.contract_at(to)
            if abi_of(type(contract), method) != EXTERNAL:
                raise UnknownMethod(f"{type(contract).__name__} has no external method {method!r}")

            tx = self._sign(signer, Transaction(
                sender=signer.address,
                to=contract.address,
                method=method,
                args=args,
                nonce=self.get_nonce(signer.address),
                chain_id=self.chain_id,
            ))
            self._verify(tx, signer)

            checkpoint = self._capture()
            try:
                result = self._execute(tx.sender, lambda: getattr(contract, method)(*args))
            except Exception as exc:
                self._restore(checkpoint)
                self._log_failure(tx, exc)
                raise

            receipt = self._commit(tx, return_value=result)

        log.debug(
            "Transaction mined",
            tx_hash=receipt.tx_hash,
            method=method,
            sender=tx.sender,
            block=receipt.block_number,
        )
        return receipt

    def call(
        self,
        to: AddressLike,
        method: str,
        args: Sequence[Any] = (),
        sender: Optional[AddressLike] = None,
    ) -> Any:
        """Read-only call. Non-view methods are simulated and rolled back."""
        args = tuple(_normalize_arg(a) for a in args)
        caller = to_address(_normalize_arg(sender)) if sender is not None else self.default_signer.address

        with self._lock:
            contract = self.contract_at(to)
            abi = abi_of(type(contract), method)
            if abi is None:
                raise UnknownMethod(f"{type(contract).__name__} has no entry point {method!r}")

            if abi == VIEW:
                return self._execute(caller, lambda: getattr(contract, method)(*args))

            checkpoint = self._capture()
            try:
                return self._execute(caller, lambda: getattr(contract, method)(*args))
            finally:
                self._restore(checkpoint)

    def mine(self, count: int = 1) -> Block:
        """Mine ``count`` empty blocks."""
        if count < 1:
            raise ValueError(f"count must be positive, got {count}")
        with self._lock:
            for _ in range(count):
                self._mine_block(())
            return self.latest_block

    def increase_time(self, seconds: int) -> int:
        """Advance the clock; takes effect from the next mined block."""
        if seconds < 0:
            raise ValueError("Cannot move time backwards")
        with self._lock:
            self._time_offset += seconds
            return self._time_offset

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def snapshot(self) -> int:
        """Capture the whole chain state; returns the snapshot ID."""
        with self._lock:
            snapshot_id = self._snapshot_ids.increment()
            self._snapshots[snapshot_id] = self._capture()
            return snapshot_id

    def revert(self, snapshot_id: int) -> None:
        """Restore a snapshot. It and every later snapshot become invalid."""
        with self._lock:
            state = self._snapshots.get(snapshot_id)
            if state is None:
                raise SnapshotError(f"Unknown or already reverted snapshot {snapshot_id}")

            self._restore(state)
            for sid in [s for s in self._snapshots if s >= snapshot_id]:
                del self._snapshots[sid]

        log.debug("Reverted to snapshot", snapshot_id=snapshot_id, block=self.block_number)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _sign(self, signer: Signer, tx: Transaction) -> Transaction:
        tx.signature = signer.sign(tx.signing_payload())
        return tx

    def _verify(self, tx: Transaction, signer: Signer) -> None:
        if address_from_public_key(signer.public_key) != tx.sender:
            raise InvalidTransactionSignature(f"Signing key does not control {tx.sender}")
        if not verify_signature(signer.public_key, tx.signing_payload(), tx.signature):
            raise InvalidTransactionSignature(f"Bad signature on transaction from {tx.sender}")

    def _execute(self, sender: str, fn: Callable[[], Any]) -> Any:
        self._call_stack.append(sender)
        try:
            return fn()
        finally:
            self._call_stack.pop()

    def _internal_call(self, caller: str, to: str, method: str, args: Tuple[Any, ...]) -> Any:
        contract = self._contracts.get(to_address(to))
        if contract is None:
            raise TransactionReverted("function call to a non-contract account")
        if abi_of(type(contract), method) is None:
            raise TransactionReverted(f"function selector {method} was not recognized")
        return self._execute(caller, lambda: getattr(contract, method)(*args))

    def _record_log(self, address: str, event: str, args: Dict[str, Any]) -> None:
        self._pending_logs.append(LogEntry(
            address=address,
            event=event,
            args=dict(args),
            log_index=len(self._pending_logs),
        ))

    def _mine_block(self, tx_hashes: Tuple[str, ...]) -> Block:
        parent = self.latest_block
        block = Block(
            number=parent.number + 1,
            timestamp=self._genesis_timestamp
            + (parent.number + 1) * self._block_time
            + self._time_offset,
            parent_hash=parent.hash,
            tx_hashes=tx_hashes,
        )
        self._blocks.append(block)
        return block

    def _commit(
        self,
        tx: Transaction,
        return_value: Any,
        contract_address: Optional[str] = None,
    ) -> Receipt:
        self._nonces[tx.sender] = tx.nonce + 1
        logs, self._pending_logs = self._pending_logs, []
        block = self._mine_block((tx.hash,))

        receipt = Receipt(
            tx_hash=tx.hash,
            block_number=block.number,
            sender=tx.sender,
            to=tx.to,
            method=tx.method,
            status=1,
            logs=logs,
            return_value=return_value,
            contract_address=contract_address,
        )
        self._receipts[tx.hash] = receipt
        return receipt

    def _capture(self) -> _ChainState:
        return _ChainState(
            contracts=dict(self._contracts),
            storage=copy.deepcopy({a: c.state for a, c in self._contracts.items()}),
            nonces=dict(self._nonces),
            block_count=len(self._blocks),
            receipts=dict(self._receipts),
            pending_logs=list(self._pending_logs),
            time_offset=self._time_offset,
        )

    def _restore(self, state: _ChainState) -> None:
        self._contracts = dict(state.contracts)
        for address, contract in self._contracts.items():
            contract.state = copy.deepcopy(state.storage[address])
        self._nonces = dict(state.nonces)
        del self._blocks[state.block_count:]
        self._receipts = dict(state.receipts)
        self._pending_logs = list(state.pending_logs)
        self._time_offset = state.time_offset

    def _log_failure(self, tx: Transaction, exc: Exception) -> None:
        if isinstance(exc, TransactionReverted):
            log.revert(
                "Transaction reverted",
                exc.reason,
                tx_hash=tx.hash,
                method=tx.method,
                sender=tx.sender,
            )
        else:
            log.error(
                "Transaction failed",
                error_code=type(exc).__name__,
                tx_hash=tx.hash,
                method=tx.method,
                sender=tx.sender,
                detail=str(exc),
            )
