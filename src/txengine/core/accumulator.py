"""
Operation Accumulator - ordered container of operation bundles.

Purely structural: no ledger semantics are checked and no I/O is performed.
Not safe for concurrent mutation; finish accumulating before handing the
compressed bundle to async stages.
"""

from typing import Iterable, List, Tuple

from solders.keypair import Keypair

from txengine.core.operation import OperationBundle


class OperationAccumulator:
    """
    Collects operation bundles in order and compresses them into one.

    Compression keeps main instructions in accumulation order and places
    cleanup instructions in reverse bundle order, so state created by a later
    bundle is torn down before state created by an earlier one.
    """

    def __init__(self):
        self._bundles: List[OperationBundle] = []
        self._signers: List[Keypair] = []

    def add_operation(self, bundle: OperationBundle) -> "OperationAccumulator":
        """Append a bundle."""
        self._bundles.append(bundle)
        return self

    def add_operations(self, bundles: Iterable[OperationBundle]) -> "OperationAccumulator":
        """Append several bundles, keeping their order."""
        self._bundles.extend(bundles)
        return self

    def prepend_operation(self, bundle: OperationBundle) -> "OperationAccumulator":
        """Insert a bundle in front of everything accumulated so far."""
        self._bundles.insert(0, bundle)
        return self

    def prepend_operations(self, bundles: Iterable[OperationBundle]) -> "OperationAccumulator":
        """Insert several bundles in front, keeping their relative order."""
        self._bundles[:0] = list(bundles)
        return self

    def add_signer(self, signer: Keypair) -> "OperationAccumulator":
        """Record a signer that is not tied to any bundle."""
        self._signers.append(signer)
        return self

    def is_empty(self) -> bool:
        """Check whether any bundle has been accumulated."""
        return len(self._bundles) == 0

    @property
    def bundles(self) -> Tuple[OperationBundle, ...]:
        return tuple(self._bundles)

    @property
    def signers(self) -> Tuple[Keypair, ...]:
        return tuple(self._signers)

    def compress(self, compress_post: bool) -> OperationBundle:
        """
        Merge every accumulated bundle into a single bundle.

        Args:
            compress_post: Fold cleanup instructions into the main list. Only
                use this once no further bundles will be added.

        Returns:
            OperationBundle holding all instructions and the de-duplicated
            union of bundle signers and standalone signers
        """
        instructions = []
        cleanup_instructions = []
        signers = []

        for bundle in self._bundles:
            instructions.extend(bundle.instructions)
            # Later bundles clean up first
            cleanup_instructions = list(bundle.cleanup_instructions) + cleanup_instructions
            signers.extend(bundle.signers)

        signers.extend(self._signers)

        if compress_post:
            instructions.extend(cleanup_instructions)
            cleanup_instructions = []

        return OperationBundle(
            instructions=instructions,
            cleanup_instructions=cleanup_instructions,
            signers=_unique_signers(signers),
        )

    def __len__(self) -> int:
        return len(self._bundles)


def _unique_signers(signers: List[Keypair]) -> List[Keypair]:
    seen = set()
    unique = []
    for signer in signers:
        pubkey = signer.pubkey()
        if pubkey in seen:
            continue
        seen.add(pubkey)
        unique.append(signer)
    return unique
