"""
PALX CPU Package
================

Machine instruction definitions for the PDP-8 family targeted by PALX:
the classic PDP-8 instruction set plus the Intersil IM6100 and Harris
HD6120 microprocessor extensions.

Modules:
    pdp8: Built-in mnemonic tables, operate group rules and the
          .NLOAD constant table.

Usage:
    from palx.cpu import (
        CPU,
        InstructionClass,
        PDP8_INSTRUCTIONS,
        opr_group,
    )
"""

from palx.cpu.pdp8 import (
    # Core types
    CPU,
    Instruction,
    InstructionClass,
    # Instruction tables
    PDP8_INSTRUCTIONS,
    IM6100_INSTRUCTIONS,
    HD6120_INSTRUCTIONS,
    CPU_INSTRUCTIONS,
    DEVICE_ADDRESS_LIMITS,
    # Operate groups
    CLA,
    NOP,
    opr_group,
    oprs_compatible,
    # .NLOAD
    NLOAD_OPCODES,
    nload_opcode,
)

__all__ = [
    "CPU",
    "Instruction",
    "InstructionClass",
    "PDP8_INSTRUCTIONS",
    "IM6100_INSTRUCTIONS",
    "HD6120_INSTRUCTIONS",
    "CPU_INSTRUCTIONS",
    "DEVICE_ADDRESS_LIMITS",
    "CLA",
    "NOP",
    "opr_group",
    "oprs_compatible",
    "NLOAD_OPCODES",
    "nload_opcode",
]
