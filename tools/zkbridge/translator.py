"""
ZKBRIDGE Error Translator

Single place where failures become boundary errors. Every host-facing
operation is wrapped by boundary_call, which:

    1. tags the call with a correlation ID
    2. translates any exception into a BridgeError subclass
    3. logs it at a level chosen by its class
       (caller input: warning, backend: error, defect: critical + traceback)
    4. re-raises it to the caller

Exceptions that are not BridgeErrors become the default kind of the stage
they escaped from. Nothing is retried and nothing aborts the process.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import contextvars
import time
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from tools.zkbridge.errors import (
    BridgeError,
    CircuitExecutionFailure,
    ErrorClass,
    ProvingFailure,
    SRSSetupFailure,
    VerificationFailure,
)
from tools.zkbridge.observability import (
    BridgeLayer,
    BridgeLogger,
    correlation_id_var,
    generate_correlation_id,
    get_logger,
)

T = TypeVar("T")


class Stage(Enum):
    """Host-facing operations."""
    SETUP_SRS = "setup_srs"
    EXECUTE = "execute"
    PROVE = "prove"
    VERIFY = "verify"
    GET_VK = "get_verification_key"


STAGE_DEFAULTS: Dict[Stage, Type[BridgeError]] = {
    Stage.SETUP_SRS: SRSSetupFailure,
    Stage.EXECUTE: CircuitExecutionFailure,
    Stage.PROVE: ProvingFailure,
    Stage.VERIFY: VerificationFailure,
    Stage.GET_VK: ProvingFailure,
}

_default_logger: Optional[BridgeLogger] = None

# set while a boundary call is running; nested calls leave reporting to the outermost one
_in_boundary: contextvars.ContextVar[bool] = contextvars.ContextVar("zkbridge_in_boundary", default=False)


def _boundary_logger() -> BridgeLogger:
    global _default_logger
    if _default_logger is None:
        _default_logger = get_logger("translator", BridgeLayer.BOUNDARY)
    return _default_logger


def translate(exc: BaseException, stage: Stage) -> BridgeError:
    """Map any exception raised during stage onto the error taxonomy."""
    if isinstance(exc, BridgeError):
        if not exc.stage:
            exc.stage = stage.value
        return exc

    kind = STAGE_DEFAULTS[stage]
    return kind(
        f"{stage.value} failed: {type(exc).__name__}: {exc}",
        stage=stage.value,
        cause=exc,
    )


def report(error: BridgeError, logger: Optional[BridgeLogger] = None) -> None:
    """Log a translated error at the level its class calls for."""
    log = logger or _boundary_logger()
    fields = {
        "operation": error.stage,
        "error_code": error.kind.value,
    }
    if error.error_class == ErrorClass.CALLER_INPUT:
        log.warning(error.message, **fields)
    elif error.error_class == ErrorClass.DEFECT:
        log.critical(error.message, exc_info=True, **fields)
    else:
        log.error(error.message, **fields)


def boundary_call(stage: Stage, logger: Optional[BridgeLogger] = None) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator applying translation and logging to a host-facing operation."""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            token = None
            if not correlation_id_var.get():
                token = correlation_id_var.set(generate_correlation_id())
            nested = _in_boundary.get()
            depth_token = _in_boundary.set(True)
            start = time.monotonic()
            try:
                result = func(*args, **kwargs)
                (logger or _boundary_logger()).operation(
                    stage.value, (time.monotonic() - start) * 1000
                )
                return result
            except Exception as exc:
                error = translate(exc, stage)
                if not nested:
                    report(error, logger)
                if error is exc:
                    raise
                raise error from exc
            finally:
                _in_boundary.reset(depth_token)
                if token is not None:
                    correlation_id_var.reset(token)
        return wrapper
    return decorator
