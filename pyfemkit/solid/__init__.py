from .logdet import log_det_F
from .materials import LameParameters, YoungPoisson, LinearElasticMaterial, NeoHookeanMaterial
__all__=['log_det_F','LameParameters','YoungPoisson','LinearElasticMaterial','NeoHookeanMaterial']
