"""Draw settlement engine for the LottoMoji recurring emoji lottery."""

__version__ = "0.1.0"
