"""
Operation bundle model.

An operation bundle is one logical action: the instructions that perform it,
the cleanup instructions that tear down whatever it created, and the extra
keypairs that must sign for it.
"""

from dataclasses import dataclass
from typing import Tuple

from solders.instruction import Instruction
from solders.keypair import Keypair


@dataclass(frozen=True)
class OperationBundle:
    """
    Instructions, cleanup instructions and required signers for one action.

    Attributes:
        instructions: Instructions executed in order
        cleanup_instructions: Instructions executed after every later bundle's
            cleanup when bundles are compressed together
        signers: Keypairs (other than the fee payer) that must sign
    """

    instructions: Tuple[Instruction, ...] = ()
    cleanup_instructions: Tuple[Instruction, ...] = ()
    signers: Tuple[Keypair, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "instructions", tuple(self.instructions))
        object.__setattr__(self, "cleanup_instructions", tuple(self.cleanup_instructions))
        object.__setattr__(self, "signers", tuple(self.signers))

    @property
    def is_empty(self) -> bool:
        """Check if the bundle carries no instructions at all."""
        return not self.instructions and not self.cleanup_instructions

    @property
    def all_instructions(self) -> Tuple[Instruction, ...]:
        """Main instructions followed by cleanup instructions."""
        return self.instructions + self.cleanup_instructions

    def __repr__(self) -> str:
        return (
            f"OperationBundle(instructions={len(self.instructions)}, "
            f"cleanup={len(self.cleanup_instructions)}, signers={len(self.signers)})"
        )


EMPTY_BUNDLE = OperationBundle()
