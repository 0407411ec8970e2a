"""Scanner for the records of a LIQUiD file.

A record is a free-form run of whitespace separated terms::

    nuc=0.713754 info=H2_sto3g 0,0=-1.252477 1,1=-0.475934 0,0,0,0=0.674493 ...

Terms start at the beginning of the record or right after whitespace.
  nuc=<decimal>                      nuclear repulsion (identity term)
  info=<word>                        provenance annotation, ignored
  p,q<filler>=<decimal>[e<int>]      one-electron integral
  p<sep>q<sep>r<sep>s<filler>=<decimal>[e<int>]
                                     two-electron integral
where <filler> is any run of non-digit characters and <sep> any non-empty run
of non-digit characters other than "=". Everything else is skipped word by word.

`nuc=` is only read at the start of a word, so text inside another word
(an `info=` value for instance) never sets the nuclear term.

The record is scanned once per kind of term: nuclear, one-electron, then
two-electron. A word that is not a term of the current kind is skipped on its
own, so a two-electron term running over several words never hides a
one-electron term. One-electron terms, coefficient included, are skipped as a
whole by the two-electron pass: a coefficient never starts another term.
"""
import logging
from typing import Iterator, Optional

from liq.fundamental_types import Integral_kind, Integral_token

logger = logging.getLogger(__name__)

NUCLEAR_TAG = "nuc="
INFO_TAG = "info="


def is_digit(c: str) -> bool:
    """ASCII digits only; `str.isdigit` also accepts superscripts and the like

    >>> is_digit("7"), is_digit("²"), is_digit("")
    (True, False, False)
    """
    return len(c) == 1 and "0" <= c <= "9"


class Scanner(object):
    """Cursor over the text of one record"""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self) -> str:
        """Current character, "" at the end of the text"""
        return self.text[self.pos : self.pos + 1]

    def startswith(self, tag: str) -> bool:
        return self.text.startswith(tag, self.pos)

    def advance(self, n: int = 1):
        self.pos = min(self.pos + n, len(self.text))

    def take_while(self, predicate) -> str:
        start = self.pos
        while not self.at_end() and predicate(self.text[self.pos]):
            self.pos += 1
        return self.text[start : self.pos]

    def digits(self) -> str:
        return self.take_while(is_digit)

    def skip_whitespace(self):
        self.take_while(str.isspace)

    def word(self) -> str:
        return self.take_while(lambda c: not c.isspace())

    # ~
    # Numbers
    # ~
    def signed_decimal(self) -> str:
        """Text of `-?[0-9]*(.[0-9]*)?`. It may well be empty (or "-", or "."):
        the conversion to float is the one in charge of complaining.

        >>> s = Scanner("-1.5e3")
        >>> s.signed_decimal(), s.peek()
        ('-1.5', 'e')
        >>> Scanner("abc").signed_decimal()
        ''
        """
        start = self.pos
        if self.peek() == "-":
            self.advance()
        self.digits()
        if self.peek() == ".":
            self.advance()
            self.digits()
        return self.text[start : self.pos]

    def exponent(self) -> str:
        """Signed integer of an `e[+-]?[0-9]+` suffix, "" when there is none.
        A lone "e" is not an exponent and is not consumed.

        >>> Scanner("e-2").exponent()
        '-2'
        >>> s = Scanner("e x")
        >>> s.exponent(), s.pos
        ('', 0)
        """
        if self.peek() != "e":
            return ""
        start = self.pos
        self.advance()
        sign = self.peek() if self.peek() in ("-", "+") else ""
        self.advance(len(sign))
        digits = self.digits()
        if not digits:
            self.pos = start
            return ""
        return sign + digits

    # ~
    # Terms
    # ~
    def nuclear(self) -> Integral_token:
        self.advance(len(NUCLEAR_TAG))
        self.skip_whitespace()
        return Integral_token(Integral_kind.NUCLEAR, (), self.signed_decimal())

    def integral(self, kind: Integral_kind) -> Optional[Integral_token]:
        """Read a term of the given kind starting at the current digit.
        Return None, and leave the cursor untouched, if there is none.

        >>> Scanner("0,1=2.0e1").integral(Integral_kind.ONE_ELECTRON).indices
        (0, 1)
        >>> Scanner("3 ,2;1 0 =4").integral(Integral_kind.TWO_ELECTRON).indices
        (3, 2, 1, 0)
        >>> Scanner("0,1,2=1.0").integral(Integral_kind.ONE_ELECTRON) is None
        True
        >>> Scanner("0;1=1.0").integral(Integral_kind.ONE_ELECTRON) is None
        True
        >>> Scanner("0,0=1.0").integral(Integral_kind.TWO_ELECTRON) is None
        True
        """
        start = self.pos
        indices = [int(self.digits())]
        separators = []
        while len(indices) < kind.n_indices:
            separator = self.take_while(lambda c: not is_digit(c) and c != "=")
            if not separator or not is_digit(self.peek()):
                self.pos = start
                return None
            separators.append(separator)
            indices.append(int(self.digits()))

        self.take_while(lambda c: not is_digit(c) and c != "=")
        if self.peek() != "=" or (kind is Integral_kind.ONE_ELECTRON and separators != [","]):
            self.pos = start
            return None

        self.advance()  # "="
        self.skip_whitespace()
        mantissa = self.signed_decimal()
        exponent = self.exponent()
        return Integral_token(kind, tuple(indices), mantissa, exponent)


def gen_nuclear_tokens(line: str) -> Iterator[Integral_token]:
    """`nuc=` terms of a record. `info=` annotations are logged and skipped."""
    scanner = Scanner(line)
    while True:
        scanner.skip_whitespace()
        if scanner.at_end():
            return
        if scanner.startswith(NUCLEAR_TAG):
            yield scanner.nuclear()
        elif scanner.startswith(INFO_TAG):
            scanner.advance(len(INFO_TAG))
            logger.debug("Ignoring info annotation %r", scanner.word())
        scanner.word()


def gen_integral_tokens(line: str, kind: Integral_kind) -> Iterator[Integral_token]:
    """One- or two-electron terms of a record, in order of appearance.
    Every word is tried on its own; the words of a term (coefficient included)
    are consumed only when the term is read, or when it is a one-electron
    term met while looking for two-electron ones.

    >>> [t.indices for t in gen_integral_tokens("5 6 0,0=1.0 1,1=2.0", Integral_kind.ONE_ELECTRON)]
    [(0, 0), (1, 1)]
    >>> [t.indices for t in gen_integral_tokens("5 6 0,0=1.0 1,1=2.0", Integral_kind.TWO_ELECTRON)]
    [(5, 6, 0, 0)]
    >>> list(gen_integral_tokens("0,0= 1.5 2,3=0.25", Integral_kind.TWO_ELECTRON))
    []
    """
    scanner = Scanner(line)
    while True:
        scanner.skip_whitespace()
        if scanner.at_end():
            return
        if is_digit(scanner.peek()):
            token = scanner.integral(kind)
            if token is not None:
                yield token
            elif kind is Integral_kind.TWO_ELECTRON:
                scanner.integral(Integral_kind.ONE_ELECTRON)
        # Leftover of the current word (or the whole word if it was not a term)
        scanner.word()


def gen_tokens(line: str) -> Iterator[Integral_token]:
    """Integral tokens of a record: the `nuc=` terms, then the one-electron
    terms, then the two-electron terms, each kind in order of appearance.
    Numeric literals are not converted here (see `Integral_token.coefficient`).

    >>> [(t.kind.value, t.indices, t.coefficient) for t in gen_tokens("0,0,1,1=5.0e-1 0,0=-1.25 nuc=0.75 info=H2")]
    [('nuc', (), 0.75), ('1e', (0, 0), -1.25), ('2e', (0, 0, 1, 1), 0.5)]

    A coefficient is part of its term, never the start of another one

    >>> [(t.indices, t.coefficient) for t in gen_tokens("0,0= 1.5 2,3=0.25")]
    [((0, 0), 1.5), ((2, 3), 0.25)]

    Integrals glued to another word are not terms

    >>> list(gen_tokens("x0,0=1.0 nuc=1.0e2y"))
    [Integral_token(kind=<Integral_kind.NUCLEAR: 'nuc'>, indices=(), mantissa='1.0', exponent='')]
    """
    yield from gen_nuclear_tokens(line)
    yield from gen_integral_tokens(line, Integral_kind.ONE_ELECTRON)
    yield from gen_integral_tokens(line, Integral_kind.TWO_ELECTRON)
