"""
ZKBRIDGE Proof Backend Dispatcher

Routes prove / verify / vk-derivation requests to the backend entry points
of the selected ProofVariant. Routing is a table lookup keyed by the enum;
tags are parsed before they get here, so there is no fallback route.

    Variant             prove                       verify
    ------------------- --------------------------- ----------------------
    plonk               derives vk, returns both    needs num_points
    honk                derives vk, returns both
    ultra_honk          needs caller vk
    ultra_honk_keccak   needs caller vk

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from tools.zkbridge.backend import ProvingBackend
from tools.zkbridge.errors import MissingParameterError, SRSSetupFailure
from tools.zkbridge.observability import BridgeLayer, get_logger
from tools.zkbridge.srs import SRSHandle, check_handle
from tools.zkbridge.variants import ProofOptions, ProofVariant
from tools.zkbridge.witness import WitnessMap

logger = get_logger("dispatcher", BridgeLayer.DISPATCH)


@dataclass(frozen=True)
class ProveResult:
    """Proof plus the verification key it verifies against."""
    proof: bytes
    verification_key: bytes


@dataclass(frozen=True)
class Route:
    """Backend entry points for one variant."""
    prove: Callable[..., object]
    verify: Callable[..., bool]
    derive_vk: Callable[[str, bool, bool], bytes]


class Dispatcher:
    """Proof-system router over a ProvingBackend."""

    def __init__(self, backend: ProvingBackend):
        self._backend = backend
        self._routes: Dict[ProofVariant, Route] = {
            ProofVariant.PLONK: Route(
                backend.prove_plonk, backend.verify_plonk, backend.get_plonk_verification_key
            ),
            ProofVariant.HONK: Route(
                backend.prove_honk, backend.verify_honk, backend.get_honk_verification_key
            ),
            ProofVariant.ULTRA_HONK: Route(
                backend.prove_ultra_honk,
                backend.verify_ultra_honk,
                backend.get_ultra_honk_verification_key,
            ),
            ProofVariant.ULTRA_HONK_KECCAK: Route(
                backend.prove_ultra_honk_keccak,
                backend.verify_ultra_honk_keccak,
                backend.get_ultra_honk_keccak_verification_key,
            ),
        }

    def route(self, variant: ProofVariant) -> Route:
        return self._routes[variant]

    def check_srs(self, srs: Optional[SRSHandle], bytecode: str, options: ProofOptions) -> SRSHandle:
        if srs is None:
            raise SRSSetupFailure("SRS not set up")
        return check_handle(srs, self._backend.circuit_size(bytecode, options.recursive))

    def prove(
        self,
        bytecode: str,
        witness: WitnessMap,
        variant: ProofVariant,
        options: ProofOptions,
        srs: Optional[SRSHandle],
        vk: Optional[bytes] = None,
    ) -> ProveResult:
        """
        Produce a proof.

        Legacy variants derive and return their own vk. The ultra family
        proves against the caller's vk, which is echoed back in the result.

        Raises:
            MissingParameterError: ultra variant without vk
            SRSSetupFailure: SRS missing or smaller than the circuit
        """
        route = self._routes[variant]
        if variant.requires_supplied_vk() and vk is None:
            raise MissingParameterError("vk", context=f"required for {variant.value}")
        self.check_srs(srs, bytecode, options)

        logger.debug(
            "Proving",
            variant=variant.value,
            recursive=options.recursive,
            low_memory=options.low_memory,
            witness_count=len(witness),
        )

        if variant.requires_supplied_vk():
            proof = route.prove(bytecode, witness, vk, options.recursive, options.low_memory)
            return ProveResult(proof=proof, verification_key=vk)

        proof, derived_vk = route.prove(bytecode, witness, options.recursive, options.low_memory)
        return ProveResult(proof=proof, verification_key=derived_vk)

    def verify(
        self,
        proof: bytes,
        vk: bytes,
        variant: ProofVariant,
        srs: Optional[SRSHandle],
        num_points: Optional[int] = None,
    ) -> bool:
        """
        Check a proof.

        Returns False for a well-formed proof that does not verify.

        Raises:
            MissingParameterError: plonk without num_points
            SRSSetupFailure: SRS not set up
            VerificationFailure: malformed proof or key
        """
        route = self._routes[variant]
        if variant.requires_point_count() and num_points is None:
            raise MissingParameterError("num_points", context=f"required for {variant.value}")
        if srs is None:
            raise SRSSetupFailure("SRS not set up")

        if variant.requires_point_count():
            result = route.verify(proof, vk, num_points)
        else:
            result = route.verify(proof, vk)

        logger.debug("Verified", variant=variant.value, valid=bool(result))
        return bool(result)

    def derive_verification_key(
        self,
        bytecode: str,
        variant: ProofVariant,
        options: ProofOptions,
        srs: Optional[SRSHandle],
    ) -> bytes:
        """Derive the verification key for a circuit under a variant."""
        route = self._routes[variant]
        self.check_srs(srs, bytecode, options)
        return route.derive_vk(bytecode, options.recursive, options.low_memory)
