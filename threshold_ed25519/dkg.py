"""
Distributed Key Generation (DKG) — dealerless alternative to
:pymod:`keygen`.

Each participant acts as a dealer: samples a random polynomial,
publishes Feldman commitments plus a Schnorr proof of knowledge of its
constant term, and sends every other participant a share.  Recipients
check each share against the dealer's commitment, then sum what they
received into their final share of the group key.  No single party ever
holds the group secret.

This is the Pedersen DKG [Ped91] with Feldman verifiable secret sharing
[Fel87] and proofs of knowledge as in FROST's KeyGen [KG20 §5.1].

The whole protocol runs in-process here; messages that would cross the
network are plain method calls.

References
----------
- Pedersen (1991). "A Threshold Cryptosystem Without a Trusted Party."
  EUROCRYPT 1991.
- Komlo, Goldberg (2020). "FROST: Flexible Round-Optimized Schnorr
  Threshold Signatures."  SAC 2020.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Dict, List

from .access import GroupParameters
from .commitment import FeldmanCommitment
from .curve import Scalar, G
from .errors import Err, ErrorKind, Ok, Result
from .keygen import KeyGenerationResult, KeyGenerator, KeyShare
from .polynomial import sample_polynomial, evaluate
from .proofs import SchnorrProof

logger = logging.getLogger(__name__)


# ── data structures ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class DKGShare:
    """A secret share from one dealer to one recipient."""

    dealer_id: int
    recipient_id: int
    share_value: Scalar          # f_dealer(recipient_id)


@dataclass(frozen=True)
class DKGCommitment:
    """A dealer's broadcast: Feldman commitment + PoK of  a_0."""

    dealer_id: int
    commitment: FeldmanCommitment
    proof_of_knowledge: SchnorrProof


# ── per-dealer state ────────────────────────────────────────────────────

class DKGDealer:
    """Round 1 state for one participant acting as dealer."""

    def __init__(self, participant_id: int, params: GroupParameters,
                 context: bytes) -> None:
        self.id = participant_id
        self.params = params
        self._poly = sample_polynomial(params.polynomial_degree)
        self.commitment = FeldmanCommitment.commit(self._poly)
        self.proof = SchnorrProof.prove(
            participant_id, self._poly[0], self.commitment.constant, context,
        )

    def get_commitment(self) -> DKGCommitment:
        return DKGCommitment(
            dealer_id=self.id,
            commitment=self.commitment,
            proof_of_knowledge=self.proof,
        )

    def compute_share(self, recipient_id: int) -> DKGShare:
        return DKGShare(
            dealer_id=self.id,
            recipient_id=recipient_id,
            share_value=evaluate(self._poly, Scalar(recipient_id)),
        )

    def compute_all_shares(self) -> List[DKGShare]:
        return [self.compute_share(pid)
                for pid in self.params.all_participant_ids()]

    def erase(self) -> None:
        """Forget the polynomial once shares are out (best-effort)."""
        self._poly = []


# ── per-recipient verification and aggregation ──────────────────────────

class DKGRecipient:
    """Round 2 state: verifies incoming shares and sums them."""

    def __init__(self, participant_id: int, params: GroupParameters,
                 context: bytes) -> None:
        self.id = participant_id
        self.params = params
        self._context = context
        self._commitments: Dict[int, DKGCommitment] = {}
        self._received: Dict[int, DKGShare] = {}
        self._complaints: List[int] = []

    def receive_commitment(self, comm: DKGCommitment) -> bool:
        """Store a dealer's commitment if its proof of knowledge holds."""
        if comm.commitment.degree != self.params.polynomial_degree:
            self._complaints.append(comm.dealer_id)
            return False
        if not comm.proof_of_knowledge.verify(
            comm.dealer_id, comm.commitment.constant, self._context,
        ):
            self._complaints.append(comm.dealer_id)
            return False
        self._commitments[comm.dealer_id] = comm
        return True

    def receive_share(self, share: DKGShare) -> bool:
        """Check  share · B == Σ C_j · i^j  against the dealer's commitment."""
        comm = self._commitments.get(share.dealer_id)
        if comm is None or share.recipient_id != self.id:
            self._complaints.append(share.dealer_id)
            return False
        if not comm.commitment.verify_share(self.id, share.share_value):
            self._complaints.append(share.dealer_id)
            return False
        self._received[share.dealer_id] = share
        return True

    def aggregate(self) -> Scalar:
        """s_i = Σ_j  f_j(i)"""
        total = Scalar.zero()
        for share in self._received.values():
            total = total + share.share_value
        return total

    @property
    def complaints(self) -> List[int]:
        return list(self._complaints)


# ── full DKG orchestration ──────────────────────────────────────────────

class DistributedKeyGenerator(KeyGenerator):
    """Dealerless key generation behind the ``KeyGenerator`` interface."""

    def generate(self, n: int, t: int) -> Result[KeyGenerationResult]:
        params = GroupParameters.create(n, t)
        if params.is_err():
            return params
        p = params.unwrap()
        all_ids = p.all_participant_ids()

        # binds every proof to this run
        context = secrets.token_bytes(32)

        # Round 1: commitments + proofs of knowledge
        dealers = {pid: DKGDealer(pid, p, context) for pid in all_ids}
        commitments = {pid: d.get_commitment() for pid, d in dealers.items()}

        recipients = {pid: DKGRecipient(pid, p, context) for pid in all_ids}
        for pid, recipient in recipients.items():
            for dealer_id, comm in commitments.items():
                if not recipient.receive_commitment(comm):
                    return Err(ErrorKind.INVALID_PARAMETERS,
                               f"participant {pid} rejected proof of "
                               f"knowledge from dealer {dealer_id}",
                               (dealer_id,))

        # Round 2: private shares
        for dealer_id, dealer in dealers.items():
            for share in dealer.compute_all_shares():
                if not recipients[share.recipient_id].receive_share(share):
                    return Err(ErrorKind.INVALID_PARAMETERS,
                               f"participant {share.recipient_id} rejected "
                               f"share from dealer {dealer_id}",
                               (dealer_id,))
            dealer.erase()

        # group commitment = Σ dealer commitments  (C_0 is the group key)
        group_commitment = commitments[all_ids[0]].commitment
        for pid in all_ids[1:]:
            group_commitment = group_commitment + commitments[pid].commitment

        shares: Dict[int, KeyShare] = {}
        for pid in all_ids:
            s_i = recipients[pid].aggregate()
            shares[pid] = KeyShare(
                signer_index=pid,
                secret_scalar=s_i,
                verification_share=s_i * G,
            )
            if group_commitment.verification_share(pid) \
                    != shares[pid].verification_share:
                return Err(ErrorKind.INVALID_PARAMETERS,
                           f"share of participant {pid} inconsistent with "
                           "group commitment", (pid,))

        logger.info("generated %s key shares (distributed)", p)
        return Ok(KeyGenerationResult(
            params=p,
            shares=shares,
            group_public_key=group_commitment.constant,
            commitment=group_commitment,
        ))


def run_dkg(n: int, t: int) -> Result[KeyGenerationResult]:
    """Run the complete DKG locally."""
    return DistributedKeyGenerator().generate(n, t)
