"""
Demo:  python -m threshold_ed25519 [-n 5] [-t 3] [--message TEXT] …

Generates a fresh group key, runs one signing session over the in-process
transport, checks the result locally, encodes it and hands it to the
proving backend, then prints the attestation.
"""

from __future__ import annotations

import argparse
import logging
import sys

from .config import AggregationStrategy, SessionConfig
from .dkg import DistributedKeyGenerator
from .keygen import TrustedDealerKeyGenerator
from .protocol import ThresholdProtocol
from .prover import LocalAttestor
from .transport import FaultPlan

logger = logging.getLogger("threshold_ed25519")


def _index_list(text: str):
    try:
        return [int(x) for x in text.split(",") if x.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected comma separated indices, got {text!r}")


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="threshold_ed25519",
        description="t-of-n threshold Ed25519 (FROST) signing demo.")
    p.add_argument("-n", type=int, default=5, help="Number of key shares (default 5).")
    p.add_argument("-t", type=int, default=3, help="Threshold (default 3).")
    p.add_argument("--message", type=str, default="Hello, threshold signatures",
                   help="Message to sign.")
    p.add_argument("--signers", type=_index_list, default=None,
                   help="Comma separated candidate indices (default: all).")
    p.add_argument("--corrupt", type=_index_list, default=[],
                   help="Signers whose shares are tampered with in transit.")
    p.add_argument("--dkg", action="store_true",
                   help="Use distributed key generation instead of a trusted dealer.")
    p.add_argument("--strategy", choices=[s.value for s in AggregationStrategy],
                   default=AggregationStrategy.PRE_VERIFY.value,
                   help="Aggregation strategy (default pre-verify).")
    p.add_argument("--timeout", type=float, default=5.0,
                   help="Seconds per collection round (default 5).")
    p.add_argument("--output", type=str, default=None,
                   help="Write the encoded CombinedSignature (96 bytes) here.")
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = SessionConfig(timeout=args.timeout,
                               strategy=AggregationStrategy(args.strategy))
    except ValueError as exc:
        logger.error("invalid configuration: %s", exc)
        return 2

    generator = DistributedKeyGenerator() if args.dkg \
        else TrustedDealerKeyGenerator()
    setup = ThresholdProtocol.setup(args.n, args.t, generator=generator,
                                    config=config)
    if setup.is_err():
        logger.error("key generation failed: %s", setup)
        return 1
    proto = setup.unwrap()
    print(f"group public key: {proto.group_public_key.to_bytes().hex()} "
          f"({proto.params})")

    message = args.message.encode()
    faults = FaultPlan(corrupt=frozenset(args.corrupt))
    outcome = proto.sign(message, args.signers, faults)
    if outcome.is_err():
        logger.error("signing failed: %s", outcome)
        return 1
    result = outcome.unwrap()
    print(f"signed by {list(result.signers)} in {result.attempts} attempt(s)"
          + (f", excluded {list(result.flagged)}" if result.flagged else ""))

    if not proto.verify(message, result.signature):
        logger.error("combined signature failed local verification")
        return 1

    frame = result.signature.encode()
    attestation = LocalAttestor().prove_encoded(message, frame)
    if attestation.is_err():
        logger.error("proving backend rejected input: %s", attestation)
        return 1
    print(f"attestation: {attestation.unwrap().summary()}")

    if args.output:
        with open(args.output, "wb") as fh:
            fh.write(frame)
        print(f"wrote {len(frame)} bytes to {args.output}")
    return 0 if attestation.unwrap().is_valid else 1


if __name__ == "__main__":
    sys.exit(main())
