"""
ZKBRIDGE SRS Manager

Owns the structured reference string, the one expensive resource shared
between calls. Setup is sized either explicitly or from a circuit's
bytecode, and is idempotent: a requirement the current SRS already covers
returns the existing handle without reloading.

Concurrency:
    setup()          writer (exclusive)
    reading()        reader (shared by prove / verify / vk derivation)

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from tools.zkbridge.backend import ProvingBackend
from tools.zkbridge.errors import BridgeError, InputDecodingError, SRSSetupFailure
from tools.zkbridge.hardening import AtomicCounter, ReadWriteLock
from tools.zkbridge.observability import BridgeLayer, get_logger

logger = get_logger("srs", BridgeLayer.SRS)


@dataclass(frozen=True)
class ExplicitSize:
    """Size the SRS to exactly num_points."""
    num_points: int


@dataclass(frozen=True)
class FromBytecode:
    """Size the SRS to what the circuit needs."""
    bytecode: str


Sizing = Union[ExplicitSize, FromBytecode]


@dataclass(frozen=True)
class SRSHandle:
    """A loaded SRS. Only created by SRSManager."""
    num_points: int
    path: Optional[str]
    recursive: bool
    digest: str

    def covers(self, points: int) -> bool:
        return self.num_points >= points

    def to_dict(self) -> dict:
        return {
            "num_points": self.num_points,
            "path": self.path,
            "recursive": self.recursive,
            "digest": self.digest,
        }


class SRSManager:
    """
    Loads and holds the current SRSHandle.

    Example:
        manager = SRSManager(backend)
        handle = manager.setup(FromBytecode(bytecode))
        with manager.reading() as srs:
            ...
    """

    def __init__(
        self,
        backend: ProvingBackend,
        max_points: Optional[int] = None,
        default_path: Optional[str] = None,
    ):
        self._backend = backend
        self._max_points = max_points
        self._default_path = default_path
        self._handle: Optional[SRSHandle] = None
        self._lock = ReadWriteLock()
        self._loads = AtomicCounter()

    @property
    def load_count(self) -> int:
        """Number of times the backend has actually loaded points."""
        return self._loads.get()

    @property
    def current(self) -> Optional[SRSHandle]:
        with self._lock.read_locked():
            return self._handle

    def required_points(self, sizing: Sizing, recursive: bool = False) -> int:
        if isinstance(sizing, ExplicitSize):
            n = sizing.num_points
            if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
                raise InputDecodingError(
                    f"SRS size must be a positive integer, got {n!r}", offending=n
                )
            return n
        if isinstance(sizing, FromBytecode):
            try:
                return self._backend.circuit_size(sizing.bytecode, recursive)
            except BridgeError as e:
                raise SRSSetupFailure(
                    f"Could not size SRS from bytecode: {e.message}", cause=e
                ) from e
        raise TypeError(f"Unknown SRS sizing: {sizing!r}")

    def setup(
        self,
        sizing: Sizing,
        storage_path: Optional[str] = None,
        recursive: bool = False,
    ) -> SRSHandle:
        """
        Ensure an SRS covering the sizing requirement is loaded.

        Raises:
            InputDecodingError: explicit size is not a positive integer
            SRSSetupFailure: requirement too large, or the backend failed
        """
        points = self.required_points(sizing, recursive)
        limit = self._max_points
        if limit is not None and points > limit:
            raise SRSSetupFailure(
                f"SRS of {points} points exceeds configured maximum of {limit}",
                offending=points,
            )

        path = storage_path or self._default_path or None

        with self._lock.write_locked():
            current = self._handle
            if current is not None and current.covers(points):
                logger.debug("SRS already covers requirement", required=points,
                             loaded=current.num_points)
                return current

            try:
                digest = self._backend.load_srs(points, path)
            except SRSSetupFailure:
                raise
            except (BridgeError, OSError, ValueError) as e:
                raise SRSSetupFailure(f"Failed to load SRS: {e}", offending=path, cause=e) from e

            handle = SRSHandle(
                num_points=points,
                path=path,
                recursive=recursive,
                digest=digest.hex(),
            )
            self._handle = handle
            self._loads.increment()

        logger.info("SRS loaded", num_points=points, path=path or "", recursive=recursive)
        return handle

    @contextmanager
    def reading(self) -> Iterator[Optional[SRSHandle]]:
        """Hold the SRS shared for the duration of a prove, verify or vk call."""
        with self._lock.read_locked():
            yield self._handle

    def require(self, points: int = 1) -> SRSHandle:
        """Return the current handle, or raise if it is missing or too small."""
        handle = self.current
        return check_handle(handle, points)


def check_handle(handle: Optional[SRSHandle], points: int) -> SRSHandle:
    if handle is None:
        raise SRSSetupFailure("SRS not set up")
    if not handle.covers(points):
        raise SRSSetupFailure(
            f"SRS has {handle.num_points} points, circuit needs {points}",
            offending=points,
        )
    return handle
