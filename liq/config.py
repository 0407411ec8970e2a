from dataclasses import dataclass
from typing import List

from liq.integral_indexing_utils import CONVENTIONS


@dataclass(frozen=True)
class Parser_config(object):
    """Options of the record parser.

    :param strict_nuclear: reject a record holding more than one `nuc=` term.
        By default only the first one is used and the others are ignored.
    :param convention: index convention of the two-electron integrals,
        "dirac" for <ij|kl> or "mulliken" for (ij|kl).

    >>> Parser_config()
    Parser_config(strict_nuclear=False, convention='dirac')
    >>> Parser_config(convention="chemist")
    Traceback (most recent call last):
        ...
    ValueError: Unknown convention 'chemist', expected one of ('dirac', 'mulliken')
    """

    strict_nuclear: bool = False
    convention: str = "dirac"

    def __post_init__(self):
        if self.convention not in CONVENTIONS:
            raise ValueError(
                f"Unknown convention {self.convention!r}, expected one of {CONVENTIONS}"
            )

    @classmethod
    def from_argv(cls, argv: List[str]) -> "Parser_config":
        """Build a configuration from command line flags

        >>> Parser_config.from_argv(["--strict", "--convention=mulliken"])
        Parser_config(strict_nuclear=True, convention='mulliken')
        >>> Parser_config.from_argv(["--verbose"])
        Traceback (most recent call last):
            ...
        ValueError: Unknown option '--verbose'
        """
        strict_nuclear = False
        convention = "dirac"
        for arg in argv:
            if arg == "--strict":
                strict_nuclear = True
            elif arg.startswith("--convention="):
                convention = arg.split("=", 1)[1]
            else:
                raise ValueError(f"Unknown option {arg!r}")
        return cls(strict_nuclear=strict_nuclear, convention=convention)


DEFAULT_CONFIG = Parser_config()
