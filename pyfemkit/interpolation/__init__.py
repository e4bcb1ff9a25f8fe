from .spatial_index import BoundingBoxIndex
from .interpolator import Interpolator
__all__=['BoundingBoxIndex','Interpolator']
