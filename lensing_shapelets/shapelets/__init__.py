"""
Shapelet expansions: basis conversion, convolution and evaluation.
"""

from .constants import (
    BasisType,
    HERMITE,
    LAGUERRE,
    BASIS_NORMALIZATION,
    FLUX_FACTOR,
    compute_size,
    compute_offset,
    compute_index,
    compute_order,
)
from .hermite import HermiteEvaluator, hermite_to_derivative, derivative_to_hermite
from .conversion import (
    ConversionCache,
    ConversionMatrix,
    get_conversion_cache,
    reset_conversion_cache,
    make_block_h2l,
)
from .convolution import HermiteConvolution
from .function import ShapeletFunction, ShapeletFunctionEvaluator

__all__ = [
    "BasisType",
    "HERMITE",
    "LAGUERRE",
    "BASIS_NORMALIZATION",
    "FLUX_FACTOR",
    "compute_size",
    "compute_offset",
    "compute_index",
    "compute_order",
    "HermiteEvaluator",
    "hermite_to_derivative",
    "derivative_to_hermite",
    "ConversionCache",
    "ConversionMatrix",
    "get_conversion_cache",
    "reset_conversion_cache",
    "make_block_h2l",
    "HermiteConvolution",
    "ShapeletFunction",
    "ShapeletFunctionEvaluator",
]
