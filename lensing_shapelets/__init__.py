"""
LensingShapelets: analytic shapelet expansions for galaxy and PSF modelling.

Shapelet functions are Gauss-Hermite (or equivalently Gauss-Laguerre)
expansions on an elliptical Gaussian envelope. The package converts between
the two bases, convolves expansions analytically and evaluates them on points,
images and moments.
"""

__version__ = "0.1.0"

from lensing_shapelets.core.base.exceptions import (
    ShapeletError,
    ValidationError,
    LengthError,
    OrderMismatchError,
    ConfigurationError,
    GeometryError,
)
from lensing_shapelets.core.base.ellipses import Ellipse, EllipseCore
from lensing_shapelets.core.config import get_config, ShapeletConfig
from lensing_shapelets.core.managers import setup_logging
from lensing_shapelets.shapelets import (
    BasisType,
    HERMITE,
    LAGUERRE,
    FLUX_FACTOR,
    compute_size,
    compute_order,
    ConversionMatrix,
    HermiteConvolution,
    ShapeletFunction,
    ShapeletFunctionEvaluator,
)

__all__ = [
    "__version__",
    "ShapeletError",
    "ValidationError",
    "LengthError",
    "OrderMismatchError",
    "ConfigurationError",
    "GeometryError",
    "Ellipse",
    "EllipseCore",
    "get_config",
    "ShapeletConfig",
    "setup_logging",
    "BasisType",
    "HERMITE",
    "LAGUERRE",
    "FLUX_FACTOR",
    "compute_size",
    "compute_order",
    "ConversionMatrix",
    "HermiteConvolution",
    "ShapeletFunction",
    "ShapeletFunctionEvaluator",
]
