from .mesh import Mesh
from .geometry import AxisAlignedBoundingBox
from .dims import SpatialDim, Symmetry
__all__=['Mesh','AxisAlignedBoundingBox','SpatialDim','Symmetry']
