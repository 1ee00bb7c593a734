"""evolve pools of strands by self-application"""

from __future__ import annotations
from typogenetics import *
from collections import Counter
from datetime import datetime
from matplotlib import pyplot as plt
import numpy as np
import argparse
import logging
import os
import sys


LOGGER = logging.getLogger(__name__)

VERBOSITY_ENV = "TYPOGENETICS_VERBOSITY"

DEFAULT_MAX_LEN = 21
"""max length of a random strand, when none is given"""


def random_strand(length: int = None, rng: np.random.Generator = None) -> Strand:
    if rng is None:
        rng = np.random.default_rng()

    if length is None:
        length = int(rng.integers(DEFAULT_MAX_LEN + 1))

    return Strand([Base(int(i)) for i in rng.integers(len(Base), size=length)])


def next_generation(pool: Iterable[Strand], rightmost: bool = False) -> List[Strand]:
    """the daughters of every strand in the pool"""
    return [dtr for strand in pool for dtr in strand.daughters(rightmost)]


def lineage(seed: Strand, generations: int, rightmost: bool = False,
            max_pool: int = None) -> Iterator[Counter[Strand]]:

    """Yields the population (strand -> #copies) of each generation, starting with
    the seed alone. Stops early if the pool dies out or outgrows max_pool."""

    pool = [seed]
    yield Counter(pool)

    for gen in range(1, generations + 1):
        if not pool:
            LOGGER.warning("pool died out before generation %d", gen)
            return

        if max_pool is not None and len(pool) > max_pool:
            LOGGER.warning("pool of %d strands exceeds %d, stopping at generation %d",
                           len(pool), max_pool, gen - 1)
            return

        pool = next_generation(pool, rightmost)
        LOGGER.info("generation %d: %d strands", gen, len(pool))
        yield Counter(pool)


def is_self_replicator(strand: Strand, rightmost: bool = False) -> bool:
    """does self-application produce (at least) two copies of the strand?"""
    return strand.daughters(rightmost).count(strand) >= 2


def sample_self_replicators(n_samples: int, length: int = None,
                            rng: np.random.Generator = None,
                            rightmost: bool = False) -> Set[Strand]:
    """the self-replicators among randomly drawn strands"""
    if rng is None:
        rng = np.random.default_rng()

    found = set()

    for _ in range(n_samples):
        s = random_strand(length, rng)
        if s not in found and is_self_replicator(s, rightmost):
            LOGGER.info("self-replicator: %r", s)
            found.add(s)

    return found


def plot_lineage(history: List[Counter[Strand]], fname: str = None) -> None:

    def autolabel(rects, ax):
        """Attach a text label above each bar displaying its height"""
        for rect in rects:
            height = rect.get_height()
            ax.text(rect.get_x() + rect.get_width()/2., height + 0.01,
                    str(int(height)), ha='center', va='bottom')


    gens = np.arange(len(history))
    _, axs = plt.subplots(1, 2)

    axs[0].set_title("pool size by generation")
    autolabel(axs[0].bar(gens, [sum(pop.values()) for pop in history]), axs[0])

    axs[1].set_title("#distinct strands by generation")
    axs[1].plot(gens, [len(pop) for pop in history], marker="o")

    if fname is None:
        plt.show()
    else:
        plt.savefig(fname)
    plt.close()



def print_time_since(t_start: datetime, file=sys.stdout):
    mins, secs = divmod((datetime.now() - t_start).seconds, 60)
    print(f"[t={mins}:{secs:02}]", file=file)


def default_verbosity() -> int:
    raw = os.getenv(VERBOSITY_ENV)
    if raw is None or not raw.strip():
        return 0
    try:
        return int(raw)
    except ValueError:
        LOGGER.warning("ignoring %s=%r (not an integer)", VERBOSITY_ENV, raw)
        return 0


def configure_logging(verbosity: int) -> None:
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbosity, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")



def run_command(args, out) -> None:
    enzyme = Enzyme(args.enzyme)
    strand = Strand(args.strand)
    first, last = enzyme.fold

    print(f"enzyme {enzyme!r} folds {first!r}..{last!r}, prefers {enzyme.preference}", file=out)

    positions = args.positions or list(Complex(strand).binding_sites(enzyme.preference))
    if not positions:
        print("no binding site", file=out)

    for pos in positions:
        print(f"\nstart at {pos}:", file=out)
        # the enzyme consumes its substrate, so each run gets a fresh one
        products = enzyme.operate_on(Complex(strand.copy()), pos, trace=out).products
        print("products:", products, file=out)


def evolve_command(args, out) -> None:
    t0 = datetime.now()
    history = []

    for gen, population in enumerate(lineage(Strand(args.seed), args.generations,
                                             args.rightmost, args.max_pool)):
        history.append(population)
        print(f"generation {gen}:", file=out)
        for strand, n_copies in population.most_common():
            print(f"  {strand}: {n_copies}", file=out)

    if args.verbosity >= 1: print_time_since(t0, file=out)
    if args.plot: plot_lineage(history, args.plot)


def sample_command(args, out) -> None:
    rng = np.random.default_rng(args.seed)
    found = sample_self_replicators(args.samples, args.length, rng, args.rightmost)

    if found:
        print(f"found {len(found)} self-reps: {sorted(found, key=repr)}", file=out)
    else:
        print("found no self-reps", file=out)



def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("-v", "--verbosity", action="count", default=default_verbosity(),
                        help="increase output verbosity (up to 2 times, eg. -vv)")

    subparsers = parser.add_subparsers(help="commands", required=True,
                                       dest="command")

    run = subparsers.add_parser("run", help="trace an enzyme acting on a strand")
    run.add_argument("enzyme", help="amino acids, eg. rpu-inc-cop-mvr")
    run.add_argument("strand", help="bases, eg. TAGATCCAGTCCATCGA")
    run.add_argument("-p", "--positions", type=int, nargs="+", metavar="POS",
                     help="binding positions (default: every unit with the preferred base)")

    evolve = subparsers.add_parser("evolve", help="follow the lineage of a strand")
    evolve.add_argument("seed", help="the strand of generation 0")
    evolve.add_argument("-n", "--generations", type=int, metavar="N", default=5,
                        help="number of generations (default: N=5)")
    evolve.add_argument("-m", "--max_pool", type=int, metavar="M", default=10_000,
                        help="stop once a pool has more than M strands (default: M=10000)")
    evolve.add_argument("--plot", metavar="FILE",
                        help="save a plot of the lineage to FILE")

    sample = subparsers.add_parser("sample", help="look for self-reps among random strands")
    sample.add_argument("-n", "--samples", type=int, metavar="N", default=1000,
                        help="number of random strands (default: N=1000)")
    sample.add_argument("-l", "--length", type=int, metavar="L",
                        help=f"strand length (default: random, up to {DEFAULT_MAX_LEN})")
    sample.add_argument("-s", "--seed", type=int, help="random seed")

    for sub in (evolve, sample):
        sub.add_argument("-r", "--rightmost", action="store_true",
                         help="bind enzymes to the rightmost preferred base")

    return parser


def main(argv: List[str] = None, out=sys.stdout) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbosity)

    match args.command:
        case "run": run_command(args, out)
        case "evolve": evolve_command(args, out)
        case "sample": sample_command(args, out)


if __name__ == "__main__":
    main()
