"""classes for simulating typogenetics"""

from __future__ import annotations
from typing import *
from enum import Enum, IntEnum, auto
import logging
import re


LOGGER = logging.getLogger(__name__)


AminoAcid = Enum("AminoAcid", start=0,
    # non: gene separator, never part of an enzyme
    names="""
    non cut del swi
    mvr mvl cop off
    ina inc ing int
    rpy rpu lpy lpu
    """ # NOTE: names are in (row-major) order of typogenetic code
)
AminoAcid.__repr__ = lambda self: self.name


class Base(IntEnum):
    A = 0
    C = auto()
    G = auto()
    T = auto()

    @property
    def complement(self) -> Base:
        match self.name:
            case "A": return Base.T
            case "T": return Base.A
            case "G": return Base.C
            case "C": return Base.G

    @property
    def purine(self) -> bool:
        match self.name:
            case "A" | "G": return True
            case _: return False

    @property
    def pyrimidine(self) -> bool:
        return not self.purine

    def __repr__(self) -> str:
        return self.name

    __str__ = __repr__


GAP = "·"
"""how an unoccupied unit is displayed"""

GAP_CHARS = {GAP, ".", "-"}
"""characters read as an unoccupied unit"""


def decode(fst: Base | None, snd: Base | None) -> AminoAcid:
    """the amino acid coded by a pair of bases (a gap codes for nothing)"""
    if fst is None or snd is None:
        return AminoAcid.non

    return AminoAcid(4 * fst + snd)


class Direction(IntEnum): # NOTE: clockwise
    NORTH = 0
    EAST = auto()
    SOUTH = auto()
    WEST = auto()

    def turn(self, kink: Kink) -> Direction:
        return Direction((self + kink) % len(Direction))

    def __repr__(self) -> str:
        return self.name.lower()


class Kink(IntEnum):
    """the folding contribution of an amino acid"""
    LEFT = -1
    STRAIGHT = 0
    RIGHT = 1


def _by_name(table: Dict[str, Any]) -> Dict[AminoAcid, Any]:
    # some names (del, int) aren't usable as attributes
    return {AminoAcid[name]: value for name, value in table.items()}


KINKS: Dict[AminoAcid, Kink] = _by_name({
    "cut": Kink.STRAIGHT, "del": Kink.STRAIGHT, "swi": Kink.RIGHT,
    "mvr": Kink.STRAIGHT, "mvl": Kink.STRAIGHT, "cop": Kink.RIGHT,
    "off": Kink.LEFT,     "ina": Kink.STRAIGHT, "inc": Kink.RIGHT,
    "ing": Kink.RIGHT,    "int": Kink.LEFT,     "rpy": Kink.RIGHT,
    "rpu": Kink.LEFT,     "lpy": Kink.LEFT,     "lpu": Kink.LEFT,
})

INSERTS: Dict[AminoAcid, Base | None] = _by_name({
    "cut": None, # cutting inserts an empty unit
    "ina": Base.A, "inc": Base.C, "ing": Base.G, "int": Base.T,
})

SEARCHES: Dict[AminoAcid, Tuple[int, Callable[[Base], bool]]] = _by_name({
    "rpy": (+1, lambda base: base.pyrimidine),
    "rpu": (+1, lambda base: base.purine),
    "lpy": (-1, lambda base: base.pyrimidine),
    "lpu": (-1, lambda base: base.purine),
})
"""search amino acid -> (step, target predicate)"""

PREFERENCE: Dict[Direction, Base] = {
    Direction.EAST: Base.A,
    Direction.NORTH: Base.C,
    Direction.SOUTH: Base.G,
    Direction.WEST: Base.T,
}
"""binding preference of a (normalised) final fold direction"""


def mirror(pos: int, length: int) -> int:
    """the index of the unit paired with pos, on the other strand of a complex"""
    return length - 1 - pos


class InvalidEnzyme(ValueError):
    """an enzyme that can't be executed (empty, or containing non / a non-amino acid)"""


class InvalidComplex(ValueError):
    """a complex whose strands differ in length"""



class Strand:
    """DNA strand, possibly with unoccupied units (None)"""

    bases: List[Base | None]

    def __init__(self, bases: List[Base | None] | str = None):
        if bases is None:
            self.bases = []

        elif isinstance(bases, str):
            cleaned = "".join(bases.split()).upper()
            try:
                self.bases = [None if c in GAP_CHARS else Base[c] for c in cleaned]
            except KeyError:
                raise ValueError("invalid strand: " + cleaned)
        else:
            self.bases = bases


    @staticmethod
    def gaps(length: int) -> Strand:
        return Strand([None] * length)


    def copy(self) -> Strand:
        return Strand(self.bases.copy())


    def insert(self, pos: int, base: Base | None, opposite: bool = False) -> None:
        """Insert the base so that it ends up at index pos.
        With opposite=True, pos is counted from the right end instead,
        as seen from the other strand of a complex."""

        if opposite:
            pos = len(self) - pos

        if not (0 <= pos <= len(self)):
            raise IndexError(f"invalid insertion index for strand of length {len(self)}: {pos}")

        self.bases.insert(pos, base)


    @property
    def segments(self) -> Iterator[Strand]:
        """the maximal runs of occupied units, left to right"""

        curr_strand = Strand()

        for base in self:
            if base is not None:
                curr_strand += base
            elif curr_strand:
                yield curr_strand
                curr_strand = Strand()

        # handle remainder
        if curr_strand: yield curr_strand


    @property
    def translation(self) -> Iterator[Enzyme]:
        """yields the enzymes encoded in this strand"""

        curr_enzyme = []

        for i in range(0, len(self) - 1, 2):
            if (acid := decode(*self[i:i + 2])) is AminoAcid.non:
                if curr_enzyme:
                    yield Enzyme(curr_enzyme)
                    curr_enzyme = []
            else:
                curr_enzyme.append(acid)

        if curr_enzyme: yield Enzyme(curr_enzyme)


    @property
    def enzymes(self) -> List[Enzyme]:
        return list(self.translation)


    def daughters(self, rightmost: bool = False) -> List[Strand]:
        """Returns the products of self-application. The encoded enzymes act in turn on
        a single complex, each binding to the leftmost (or rightmost) unit with its
        preferred base; an enzyme with nowhere to bind is skipped."""

        substrate = Complex(self.copy())

        for enzyme in self.translation:
            sites = list(substrate.binding_sites(enzyme.preference))
            if not sites:
                LOGGER.debug("%r finds no %s in %r", enzyme, enzyme.preference, substrate[0])
                continue

            enzyme.operate_on(substrate, sites[-1] if rightmost else sites[0])

        return substrate.products


    def daughter_sets(self) -> Iterator[List[Strand]]:
        """Yields the products of self-application, one list for each sequence
        of enzyme bindings (leftmost bindings first)."""

        enzymes = self.enzymes

        def apply_enzymes_from(enzyme_idx: int, substrate: Complex) -> Iterator[List[Strand]]:
            if enzyme_idx == len(enzymes):
                yield substrate.products
                return

            enzyme = enzymes[enzyme_idx]
            sites = list(substrate.binding_sites(enzyme.preference))

            if not sites: # enzyme not applicable to active strand
                yield from apply_enzymes_from(enzyme_idx + 1, substrate)

            for site in sites:
                branch = substrate.copy()
                enzyme.operate_on(branch, site)
                yield from apply_enzymes_from(enzyme_idx + 1, branch)


        yield from apply_enzymes_from(0, Complex(self.copy()))


    def __iadd__(self, base: Base | None):
        self.bases.append(base)
        return self

    def __eq__(self, obj):
        return isinstance(obj, Strand) and self.bases == obj.bases

    def __hash__(self):
        return hash(tuple(self.bases))

    def __repr__(self):
        return "".join(GAP if b is None else b.name for b in self.bases) if self else 'ε'

    def __getitem__(self, key):
        return self.bases[key]

    def __setitem__(self, key, base: Base | None):
        self.bases[key] = base

    def __len__ (self): return len(self.bases)
    def __bool__(self): return bool(self.bases)
    def __iter__(self): return iter(self.bases)



class Enzyme:
    """typogenetic enzyme: an immutable, non-empty chain of amino acids"""

    amino_acids: Tuple[AminoAcid, ...]

    def __init__(self, amino_acids: Iterable[AminoAcid] | str):
        if isinstance(amino_acids, str):
            try:
                amino_acids = [AminoAcid[name.lower()]
                               for name in re.split(r"[\s,\-]+", amino_acids.strip()) if name]
            except KeyError as exc:
                raise InvalidEnzyme(f"unknown amino acid: {exc.args[0]}") from None

        self.amino_acids = tuple(amino_acids)

        if not self.amino_acids:
            raise InvalidEnzyme("empty enzyme")

        for acid in self.amino_acids:
            if not isinstance(acid, AminoAcid) or acid is AminoAcid.non:
                raise InvalidEnzyme(f"{acid!r} can't be part of an enzyme")


    @property
    def fold(self) -> Tuple[Direction, Direction]:
        """Directions of the first and last segment of the tertiary structure.
        The last one sums the kinks of all amino acids, first and last included;
        only then does the enzyme Rpu-Inc-Cop-Mvr-Mvl-Swi-Lpu-Int prefer G."""

        first = Direction.NORTH.turn(KINKS[self[0]])
        last = Direction.NORTH

        for amino_acid in self:
            last = last.turn(KINKS[amino_acid])

        return first, last


    @property
    def preference(self) -> Base:
        """the base this enzyme binds to"""
        first, last = self.fold
        return PREFERENCE[Direction((last + Direction.EAST - first) % len(Direction))]


    def operate_on(self, substrate: Complex, pos: int, trace: SupportsWrite | None = None) -> Complex:
        """Act on the complex (in place), starting at pos of its first strand.
        Returns the same complex; a trace of every step is written if a sink is given."""

        if len(substrate[0]) != len(substrate[1]):
            raise InvalidComplex(
                f"strand lengths differ: {len(substrate[0])} != {len(substrate[1])}")

        if not (0 <= pos < len(substrate)):
            raise ValueError(
                f"invalid index for strand of length {len(substrate)}: {pos}")

        if substrate[0][pos] is None:
            raise ValueError(f"can't bind to an empty unit: {pos}")

        EnzymeRuntime(substrate, pos, trace).run(self)
        return substrate


    def __eq__(self, obj):
        return isinstance(obj, Enzyme) and self.amino_acids == obj.amino_acids

    def __hash__(self): return hash(self.amino_acids)
    def __repr__(self): return "-".join(acid.name for acid in self)
    def __getitem__(self, key): return self.amino_acids[key]
    def __len__ (self): return len(self.amino_acids)
    def __iter__(self): return iter(self.amino_acids)



class SupportsWrite(Protocol):
    def write(self, s: str, /) -> Any: ...



class Complex:
    """Two antiparallel strands, paired unit by unit: unit i of the second
    strand pairs with unit mirror(i) of the first. The first one is the
    strand an enzyme is acting on."""

    strands: List[Strand]

    def __init__(self, strand: Strand, partner: Strand = None):
        if partner is None:
            partner = Strand.gaps(len(strand))

        self.strands = [strand, partner]


    def flip(self) -> None:
        self.strands.reverse()


    def insert(self, pos: int, base: Base | None) -> None:
        """Insert the base at pos of the first strand, and an empty
        unit at the paired position of the second one."""

        if not (0 <= pos <= len(self)):
            raise IndexError(f"invalid insertion index for complex of length {len(self)}: {pos}")

        self[0].insert(pos, base)
        self[1].insert(pos, None, opposite=True)


    def binding_sites(self, base: Base) -> Iterator[int]:
        """positions (on the first strand) holding the given base"""
        return (i for i, b in enumerate(self[0]) if b == base)


    def copy(self) -> Complex:
        return Complex(*(s.copy() for s in self))


    @property
    def products(self) -> List[Strand]:
        """the strands that fall apart, first strand's before second's"""
        return [segment for strand in self for segment in strand.segments]


    def __repr__(self) -> str:
        return f"{self[0]!r}/{self[1]!r}"

    def __getitem__(self, key): return self.strands[key]
    def __len__ (self): return len(self.strands[0])
    def __iter__(self): return iter(self.strands)



class EnzymeRuntime:
    """the environment of an active enzyme"""

    substrate: Complex
    """the complex the enzyme is bound to"""

    pos: int
    """the enzyme's position on the first strand of the substrate"""

    copy_mode: bool

    trace: SupportsWrite | None
    """where to write each step (if anywhere)"""

    def __init__(self, substrate: Complex, pos: int, trace: SupportsWrite | None = None):
        self.substrate = substrate
        self.pos = pos
        self.copy_mode = False
        self.trace = trace


    class Halt(Exception):
        """The enzyme fell off the strand it was bound to, either past
        one of its ends or onto an empty unit."""
        pass


    @property
    def strand(self) -> Strand:
        return self.substrate[0]

    @property
    def partner(self) -> Strand:
        return self.substrate[1]

    @property
    def in_bounds(self) -> bool:
        return 0 <= self.pos < len(self.strand)

    @property
    def on_strand(self) -> bool:
        return self.in_bounds and self.strand[self.pos] is not None


    def copy_opposite(self) -> None:
        """put the complement of the current base on the paired unit"""
        if (base := self.strand[self.pos]) is not None:
            self.partner[mirror(self.pos, len(self.partner))] = base.complement


    def insert_right(self, base: Base | None) -> None:
        """Insert the base on the right and move to it"""
        self.pos += 1
        self.substrate.insert(self.pos, base)


    def search(self, step: int, target: Callable[[Base], bool]) -> None:
        self.pos += step

        while self.on_strand:
            if self.copy_mode:
                self.copy_opposite()

            if target(self.strand[self.pos]):
                break

            self.pos += step


    def execute(self, amino_acid: AminoAcid) -> None:
        match amino_acid.name if isinstance(amino_acid, AminoAcid) else None:
            case "del":
                self.strand[self.pos] = None
                self.pos -= 1

            case "swi":
                self.substrate.flip()
                self.pos = mirror(self.pos, len(self.strand))

            case "mvr":
                self.pos += 1

            case "mvl":
                self.pos -= 1

            case "cop":
                self.copy_mode = True

            case "off":
                self.copy_mode = False

            case "cut" | "ina" | "inc" | "ing" | "int":
                self.insert_right(INSERTS[amino_acid])

            case "rpy" | "rpu" | "lpy" | "lpu":
                self.search(*SEARCHES[amino_acid])

            case _:
                raise InvalidEnzyme(f"can't execute {amino_acid!r}")

        if not self.on_strand:
            raise EnzymeRuntime.Halt()

        if self.copy_mode:
            self.copy_opposite()


    def run(self, enzyme: Iterable[AminoAcid]) -> bool:
        """Returns True iff all of the enzyme was executed without falling off."""

        for amino_acid in enzyme:
            self.report(repr(amino_acid))
            try:
                self.execute(amino_acid)

            except EnzymeRuntime.Halt:
                self.report("empty" if self.in_bounds else "off")
                LOGGER.debug("%r fell off %r at %d", enzyme, self.strand, self.pos)
                return False

        self.report("done")
        return True


    def report(self, label: str) -> None:
        if self.trace is None: return

        if not self.in_bounds:
            current = "-"
        elif (base := self.strand[self.pos]) is None:
            current = GAP
        else:
            current = base.name

        self.trace.write(
            f'{label:<5} {self.pos:4d} {current} "{self.strand!r}" "{self.partner!r}"\n')
