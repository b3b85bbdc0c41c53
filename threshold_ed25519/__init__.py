"""
threshold_ed25519: t-of-n threshold Ed25519 signatures (FROST).

A practical threshold signature library combining:

- **Shamir sharing with Feldman commitments** — trusted dealer or a
  dealerless Pedersen DKG [Gennaro et al., J. Cryptology 2007]
- **FROST two-round signing** [Komlo & Goldberg, SAC 2020], with the
  FROST(Ed25519, SHA-512) ciphersuite of RFC 9591
- **Accountable aggregation**: per-share verification flags and
  excludes misbehaving signers

The combined signature is an ordinary RFC 8032 Ed25519 signature;
verifiers need nothing but the group public key.

Quick start
-----------
::

    from threshold_ed25519 import ThresholdProtocol

    proto = ThresholdProtocol.setup(n=5, t=3).unwrap()

    outcome = proto.sign(b"transfer 1 BTC to Alice").unwrap()
    assert proto.verify(b"transfer 1 BTC to Alice", outcome.signature)

    print(f"Signed by: {outcome.signers}")
"""

__version__ = "0.1.0"

# ── core types ──────────────────────────────────────────────────────────
from .curve import Scalar, Point, G, ORDER

# ── results ─────────────────────────────────────────────────────────────
from .errors import Ok, Err, ErrorKind, Result, ThresholdError

# ── configuration ───────────────────────────────────────────────────────
from .access import GroupParameters, MAX_SIGNERS
from .config import AggregationStrategy, SessionConfig

# ── protocol ────────────────────────────────────────────────────────────
from .protocol import ThresholdProtocol

# ── key generation ──────────────────────────────────────────────────────
from .keygen import (
    KeyShare,
    KeyGenerationResult,
    KeyGenerator,
    TrustedDealerKeyGenerator,
    generate,
)
from .dkg import DistributedKeyGenerator, run_dkg

# ── signing primitives (for advanced usage) ─────────────────────────────
from .signing import (
    SignerParticipant,
    NonceCommitment,
    NonceSecret,
    SigningPackage,
    SignatureShare,
)
from .verification import ShareVerifier, verify_signature
from .aggregation import Aggregator

# ── sessions ────────────────────────────────────────────────────────────
from .session import SessionState, SigningSession
from .coordinator import SigningCoordinator, SigningOutcome
from .transport import Transport, LocalTransport, SignerEndpoint, FaultPlan

# ── wire format and proving ─────────────────────────────────────────────
from .codec import SignerMessage, SignerResponse, CombinedSignature
from .prover import Attestation, ProvingBackend, LocalAttestor

# ── cryptographic building blocks ───────────────────────────────────────
from .polynomial import (
    sample_polynomial,
    evaluate,
    lagrange_coefficient,
    interpolate_at_zero,
)
from .commitment import FeldmanCommitment
from .proofs import SchnorrProof

__all__ = [
    # version
    "__version__",
    # core
    "Scalar", "Point", "G", "ORDER",
    # results
    "Ok", "Err", "ErrorKind", "Result", "ThresholdError",
    # configuration
    "GroupParameters", "MAX_SIGNERS", "AggregationStrategy", "SessionConfig",
    # protocol
    "ThresholdProtocol",
    # keygen
    "KeyShare", "KeyGenerationResult", "KeyGenerator",
    "TrustedDealerKeyGenerator", "generate",
    "DistributedKeyGenerator", "run_dkg",
    # signing
    "SignerParticipant", "NonceCommitment", "NonceSecret", "SigningPackage",
    "SignatureShare", "ShareVerifier", "verify_signature", "Aggregator",
    # sessions
    "SessionState", "SigningSession", "SigningCoordinator", "SigningOutcome",
    "Transport", "LocalTransport", "SignerEndpoint", "FaultPlan",
    # wire & proving
    "SignerMessage", "SignerResponse", "CombinedSignature",
    "Attestation", "ProvingBackend", "LocalAttestor",
    # polynomials
    "sample_polynomial", "evaluate", "lagrange_coefficient",
    "interpolate_at_zero",
    # commitments & proofs
    "FeldmanCommitment", "SchnorrProof",
]
