"""
PDP-8 Family Instruction Set Definition
=======================================

This module defines the built-in machine instructions known to PALX: the
standard PDP-8 set, the extra mnemonics of the Intersil IM6100 support
chips (IM6101 PIE, IM6102 MEDIC, IM6103 PIO) and the Harris HD6120.

The PDP-8 is a 12-bit machine: every instruction is one word, and all
values below are octal.

Instruction Classes
-------------------
| Class | Operand                              | Example        |
|-------|--------------------------------------|----------------|
| MRI   | address, optional @ for indirect     | TAD @PTR       |
| OPR   | other OPR mnemonics, OR-combined     | CLA CLL IAC    |
| IOT   | none                                 | ION            |
| CXF   | field number 0-7, encoded in bits 3-5| CDF 1          |
| PIE   | IM6101 select address 1-31           | READ1 3        |
| PIO   | IM6103 select address 1-3            | WPA 1          |

Operate Groups
--------------
OPR micro-instructions come in three groups which may not be mixed in
a single word, with the exception of CLA (07200) which exists in every
group:

- Group 1: (op & 07400) == 07000
- Group 2: (op & 07401) == 07400
- Group 3: (op & 07401) == 07401

CPU Specific Mnemonics
----------------------
The IM6100 and HD6120 mnemonics are not predefined; they are added to the
symbol table by the .IM6100 and .HD6120 pseudo-ops. Some names (e.g. WSR)
mean different things on the two chips, and the most recently selected
CPU wins.

Reference
---------
- DEC PDP-8/E Small Computer Handbook
- Intersil IM6100 family data sheets
- Harris HD-6120 data sheet
"""

from dataclasses import dataclass
from enum import Enum, IntEnum, auto


# =============================================================================
# Instruction Classes
# =============================================================================

class InstructionClass(Enum):
    """
    Operand syntax of a machine instruction.

    The class decides how the expression evaluator parses whatever
    follows the mnemonic.
    """
    MRI = auto()   # Memory reference (AND, TAD, ISZ, DCA, JMS, JMP)
    OPR = auto()   # Operate micro-instruction
    IOT = auto()   # Fixed input/output transfer
    PIE = auto()   # IM6101 peripheral interface element
    PIO = auto()   # IM6103 parallel I/O
    CXF = auto()   # Change field (CDF, CIF, CXF, LEAR)


class CPU(IntEnum):
    """Processor selected with .IM6100 / .HD6120 (NONE for a plain PDP-8)."""
    NONE = 0
    IM6100 = 6100
    HD6120 = 6120


@dataclass(frozen=True)
class Instruction:
    """
    A built-in machine instruction.

    Attributes:
        mnemonic: Upper case name as written in source
        opcode: 12-bit base opcode (octal)
        kind: How the operand is parsed
    """
    mnemonic: str
    opcode: int
    kind: InstructionClass

    def __repr__(self) -> str:
        return f"Instruction({self.mnemonic}, {self.opcode:04o}, {self.kind.name})"


def _table(kind: InstructionClass, *pairs: tuple[str, int]) -> tuple[Instruction, ...]:
    return tuple(Instruction(name, opcode, kind) for name, opcode in pairs)


# =============================================================================
# Standard PDP-8 Instructions
# =============================================================================

MRI = InstructionClass.MRI
OPR = InstructionClass.OPR
IOT = InstructionClass.IOT
PIE = InstructionClass.PIE
PIO = InstructionClass.PIO
CXF = InstructionClass.CXF

PDP8_INSTRUCTIONS: tuple[Instruction, ...] = (
    # Memory reference instructions
    *_table(MRI,
            ("AND", 0o0000), ("TAD", 0o1000), ("ISZ", 0o2000),
            ("DCA", 0o3000), ("JMS", 0o4000), ("JMP", 0o5000)),

    # Operate instructions
    *_table(OPR,
            ("NOP", 0o7000), ("IAC", 0o7001), ("RAL", 0o7004),
            ("RTL", 0o7006), ("RAR", 0o7010), ("RTR", 0o7012),
            ("BSW", 0o7002), ("CML", 0o7020), ("CMA", 0o7040),
            ("CIA", 0o7041), ("CLL", 0o7100), ("STL", 0o7120),
            ("CLA", 0o7200), ("GLK", 0o7204), ("STA", 0o7240),
            ("HLT", 0o7402), ("OSR", 0o7404), ("SKP", 0o7410),
            ("SNL", 0o7420), ("SZL", 0o7430), ("SZA", 0o7440),
            ("SNA", 0o7450), ("SMA", 0o7500), ("SPA", 0o7510),
            ("LAS", 0o7604), ("MQL", 0o7421), ("MQA", 0o7501),
            ("SWP", 0o7521), ("CAM", 0o7621), ("ACL", 0o7701)),

    # Memory extension
    *_table(CXF, ("CDF", 0o6201), ("CIF", 0o6202), ("CXF", 0o6203)),
    *_table(IOT,
            ("RDF", 0o6214), ("RIF", 0o6224), ("RIB", 0o6234),
            ("RMF", 0o6244)),

    # Processor IOTs
    *_table(IOT,
            ("SKON", 0o6000), ("ION", 0o6001), ("IOF", 0o6002),
            ("SRQ", 0o6003), ("GTF", 0o6004), ("RTF", 0o6005),
            ("SGT", 0o6006), ("CAF", 0o6007)),
)


# =============================================================================
# Intersil IM6100 Family Mnemonics
# =============================================================================

IM6100_INSTRUCTIONS: tuple[Instruction, ...] = (
    # IM6101 peripheral interface element
    *_table(PIE,
            ("READ1", 0o6000), ("READ2", 0o6010), ("WRITE1", 0o6001),
            ("WRITE2", 0o6011), ("SKIP1", 0o6002), ("SKIP2", 0o6003),
            ("SKIP3", 0o6012), ("SKIP4", 0o6013), ("RCRA", 0o6004),
            ("WCRA", 0o6005), ("WCRB", 0o6015), ("WVR", 0o6014),
            ("SFLAG1", 0o6006), ("SFLAG3", 0o6016), ("CFLAG1", 0o6007),
            ("CFLAG3", 0o6017)),

    # IM6103 parallel I/O
    *_table(PIO,
            ("SETPA", 0o6300), ("CLRPA", 0o6301), ("WPA", 0o6302),
            ("RPA", 0o6303), ("SETPB", 0o6304), ("CLRPB", 0o6305),
            ("WPB", 0o6306), ("RPB", 0o6307), ("SETPC", 0o6310),
            ("CLRPC", 0o6311), ("WPC", 0o6312), ("RPC", 0o6313),
            ("SKPOR", 0o6314), ("SKPIR", 0o6315), ("WSR", 0o6316),
            ("RSR", 0o6317)),

    # IM6102 memory extension, DMA and clock (MEDIC)
    *_table(IOT,
            ("LIF", 0o6254),
            ("CLZE", 0o6130), ("CLSK", 0o6131), ("CLOE", 0o6132),
            ("CLAB", 0o6133), ("CLEN", 0o6134), ("CLSA", 0o6135),
            ("CLBA", 0o6136), ("CLCA", 0o6137),
            ("LCAR", 0o6205), ("RCAR", 0o6215), ("LWCR", 0o6225)),
    Instruction("LEAR", 0o6206, CXF),
    *_table(IOT,
            ("REAR", 0o6235), ("LFSR", 0o6245), ("RFSR", 0o6255),
            ("WRVR", 0o6275), ("SKOF", 0o6265)),
)


# =============================================================================
# Harris HD6120 Mnemonics
# =============================================================================

HD6120_INSTRUCTIONS: tuple[Instruction, ...] = (
    Instruction("R3L", 0o7014, OPR),
    *_table(IOT,
            ("WSR", 0o6246), ("GCF", 0o6256),
            ("PR0", 0o6206), ("PR1", 0o6216), ("PR2", 0o6226),
            ("PR3", 0o6236), ("PRS", 0o6000), ("PGO", 0o6003),
            ("PEX", 0o6004), ("CPD", 0o6266), ("SPD", 0o6276)),

    # Hardware stacks
    *_table(IOT,
            ("PPC1", 0o6205), ("PPC2", 0o6245), ("PAC1", 0o6215),
            ("PAC2", 0o6255), ("RTN1", 0o6225), ("RTN2", 0o6265),
            ("POP1", 0o6235), ("POP2", 0o6275), ("RSP1", 0o6207),
            ("RSP2", 0o6227), ("LSP1", 0o6217), ("LSP2", 0o6237)),
)

CPU_INSTRUCTIONS: dict[CPU, tuple[Instruction, ...]] = {
    CPU.IM6100: IM6100_INSTRUCTIONS,
    CPU.HD6120: HD6120_INSTRUCTIONS,
}


# =============================================================================
# Operate Groups
# =============================================================================

CLA = 0o7200

# Limits for the select address of PIE / PIO instructions
DEVICE_ADDRESS_LIMITS: dict[InstructionClass, int] = {PIE: 31, PIO: 3}


def opr_group(opcode: int) -> int:
    """
    Return the operate group (1, 2 or 3) of an OPR opcode, 0 if none.

    Args:
        opcode: 12-bit operate instruction

    Returns:
        Group number
    """
    if (opcode & 0o7400) == 0o7000:
        return 1
    if (opcode & 0o7401) == 0o7400:
        return 2
    if (opcode & 0o7401) == 0o7401:
        return 3
    return 0


def oprs_compatible(first: int, second: int) -> bool:
    """
    Check whether two OPR opcodes may be OR-combined into one word.

    CLA belongs to every group, so it combines with anything.
    """
    if first == CLA or second == CLA:
        return True
    return opr_group(first) == opr_group(second)


# =============================================================================
# .NLOAD Constants
# =============================================================================
# Constants that a single OPR instruction can load into the AC.

NLOAD_OPCODES: dict[int, int] = {
    0o0000: 0o7200,  # CLA
    0o0001: 0o7201,  # CLA IAC
    0o0002: 0o7326,  # CLA CLL CML RTL
    0o2000: 0o7332,  # CLA CLL CML RTR
    0o3777: 0o7350,  # CLA CLL CMA RAR
    0o4000: 0o7330,  # CLA CLL CML RAR
    0o5777: 0o7352,  # CLA CLL CMA RTR
    0o7775: 0o7346,  # CLA CLL CMA RTL
    0o7776: 0o7344,  # CLA CLL CMA RAL
    0o7777: 0o7240,  # CLA CMA
    0o0003: 0o7325,  # CLA CLL CML IAC RAL
    0o0004: 0o7307,  # CLA CLL IAC RTL
    0o0006: 0o7327,  # CLA CLL CML IAC RTL
    0o6000: 0o7333,  # CLA CLL CML IAC RTR
    0o0100: 0o7203,  # CLA IAC BSW
}

# R3L only exists on the HD6120
NLOAD_HD6120_OPCODES: dict[int, int] = {
    0o0010: 0o7315,  # CLA CLL IAC R3L
}

NOP = 0o7000


def nload_opcode(value: int, cpu: CPU) -> int | None:
    """
    Find the OPR instruction that loads a constant into the AC.

    Args:
        value: 12-bit constant
        cpu: Selected processor

    Returns:
        The opcode, or None if no single instruction can do it
    """
    if value in NLOAD_OPCODES:
        return NLOAD_OPCODES[value]
    if cpu == CPU.HD6120 and value in NLOAD_HD6120_OPCODES:
        return NLOAD_HD6120_OPCODES[value]
    return None
