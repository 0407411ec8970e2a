"""
liq: reader for molecular integrals stored in the LIQUiD text format.

>>> from liq.io import parse_record
>>> parse_record("nuc=0.5 0,0=-1.0 0,0,0,0=0.25").n_terms
3
"""

__version__ = "0.1.0"
