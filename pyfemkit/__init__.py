"""pyfemkit: element assembly, point location and solid mechanics kernels."""
__version__ = "0.1.0"
